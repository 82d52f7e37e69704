"""Command line entry point"""

import argparse
import logging
import sys
import time
from pathlib import Path
from typing import Optional

from .config import Opts, load_config, opts_from_mapping, validate_modules
from .errors import BridgeError
from .pipeline import generate

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Generate a Rust/Dart bridge from an IR file")
    parser.add_argument("ir_file", nargs="?", help="Path to IR file (positional)")
    parser.add_argument("--config", "-c", help="YAML config file, one module or a `modules:` list")
    parser.add_argument("--rust-output", help="Generated Rust file (io/web files are written beside it)")
    parser.add_argument("--dart-output", help="Generated Dart bindings file")
    parser.add_argument("--c-output", action="append", default=[],
                        help="Generated C header; repeat to write copies")
    parser.add_argument("--dart-root", help="Dart package root (default: nearest pubspec.yaml)")
    parser.add_argument("--rust-crate-dir", help="Rust crate root (default: nearest Cargo.toml)")
    parser.add_argument("--class-name", help="Dart class name (default: derived from the IR file name)")
    parser.add_argument("--unique-id", help="Symbol prefix id (default: hash of the IR path)")
    parser.add_argument("--llvm-path", action="append", default=[], help="LLVM install path for ffigen")
    parser.add_argument("--llvm-compiler-opts", default="", help="Extra clang options for ffigen")
    parser.add_argument("--exclude-symbol", action="append", default=[],
                        help="Symbol cbindgen should not export")
    parser.add_argument("--skip-deps-check", action="store_true", help="Skip ffi/ffigen version checks")
    parser.add_argument("--no-wasm", action="store_true", help="Do not generate the wasm Rust file")
    parser.add_argument("--dart-format-line-length", type=int, default=80)
    parser.add_argument("--skip-format", action="store_true", help="Do not run rustfmt / dart format")
    parser.add_argument("--build-runner", action="store_true", help="Run build_runner afterwards")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    return parser


def configs_from_args(parser: argparse.ArgumentParser, args: argparse.Namespace) -> list[Opts]:
    if args.config:
        return load_config(Path(args.config))

    if not args.ir_file:
        parser.error("IR file is required (positional or via --config)")
    data = {
        'ir': args.ir_file,
        'rust_output': args.rust_output,
        'dart_output': args.dart_output,
        'c_output': args.c_output,
        'dart_root': args.dart_root,
        'rust_crate_dir': args.rust_crate_dir,
        'class_name': args.class_name,
        'unique_id': args.unique_id,
        'llvm_path': args.llvm_path,
        'llvm_compiler_opts': args.llvm_compiler_opts,
        'exclude_symbols': args.exclude_symbol,
        'skip_deps_check': args.skip_deps_check,
        'wasm': not args.no_wasm,
        'dart_format_line_length': args.dart_format_line_length,
        'skip_format': args.skip_format,
        'build_runner': args.build_runner,
    }
    configs = [opts_from_mapping(data, 0, Path.cwd())]
    validate_modules(configs)
    return configs


def main(argv: Optional[list[str]] = None) -> int:
    start_time = time.perf_counter()

    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        configs = configs_from_args(parser, args)
        written = generate(configs)
    except BridgeError as exc:
        logger.error("%s", exc)
        return 1

    for path in written:
        print(f"Generated: {path}")

    elapsed = time.perf_counter() - start_time
    print(f"Generation completed in {elapsed*1000:.2f} ms")
    return 0


if __name__ == "__main__":
    sys.exit(main())
