"""End-to-end generation for one or more bridge modules"""

import logging
from pathlib import Path

from .c_generator import AnchorGenerator
from .commands import (
    BindgenArgs,
    bindgen_rust_to_dart,
    build_runner,
    ensure_tools_available,
    format_dart,
    format_rust,
)
from .config import Opts, validate_modules
from .errors import ConfigError
from .parser import IRParser
from .rust_generator import RustGenerator
from .target import Target
from .types import IrFile
from .utils import write_atomic

logger = logging.getLogger(__name__)


def load_ir(path: str) -> IrFile:
    try:
        content = Path(path).read_text(encoding='utf-8')
    except OSError as exc:
        raise ConfigError(f"cannot read IR file {path}: {exc}") from exc
    return IRParser(content).parse()


def _unique(values):
    return list(dict.fromkeys(values))


def check_preconditions(configs: list[Opts]) -> None:
    for dart_root in _unique(c.dart_root for c in configs):
        skip = all(c.skip_deps_check for c in configs if c.dart_root == dart_root)
        ensure_tools_available(dart_root, skip)


def generate_rust(config: Opts) -> tuple[RustGenerator, list[Path]]:
    """Write the Rust sources of one module"""
    logger.info("Generating module %s (%s)", config.class_name, config.unique_id)
    ir_file = load_ir(config.ir_path)

    generator = RustGenerator(ir_file, config)
    code = generator.generate()

    written = [
        write_atomic(config.rust_output_path, code[Target.COMMON]),
        write_atomic(config.io_output_path, code[Target.IO]),
    ]
    if config.wasm_enabled:
        written.append(write_atomic(config.wasm_output_path, code[Target.WASM]))
    return generator, written


def generate_bindings(config: Opts, generator: RustGenerator, all_configs: list[Opts],
                      foreign_symbols: list[str]) -> list[Path]:
    """Write the C headers and Dart bindings of one module.

    cbindgen sees the whole crate, so the exports of the other modules
    (`foreign_symbols`) are excluded and their prefixes left untouched.
    """
    written = []
    primary_header = config.c_output_paths[0]
    bindgen_rust_to_dart(BindgenArgs(
        rust_crate_dir=config.rust_crate_dir,
        c_output_path=primary_header,
        dart_output_path=config.dart_output_path,
        dart_class_name=config.class_name,
        c_struct_names=generator.wire_struct_names,
        prefix=config.symbol_prefix,
        exclude_symbols=_unique(config.exclude_symbols + foreign_symbols),
        foreign_prefixes=[c.symbol_prefix for c in all_configs if c is not config],
        llvm_paths=config.llvm_paths,
        llvm_compiler_opts=config.llvm_compiler_opts,
    ), config.dart_root)
    written.append(Path(config.dart_output_path))

    header = Path(primary_header).read_text(encoding='utf-8')
    for index, c_path in enumerate(config.c_output_paths):
        anchor = AnchorGenerator(config, all_configs, generator.extern_func_names, index).generate()
        written.append(write_atomic(c_path, f"{header}\n{anchor}"))

    return written


def generate(configs: list[Opts]) -> list[Path]:
    """Run the whole pipeline; returns every file written"""
    validate_modules(configs)
    check_preconditions(configs)

    written = []
    generated = []
    for config in configs:
        generator, rust_files = generate_rust(config)
        generated.append((config, generator))
        written += rust_files

    for config, generator in generated:
        foreign_symbols = [name for other, g in generated if other is not config for name in g.extern_func_names]
        written += generate_bindings(config, generator, configs, foreign_symbols)

    if not all(c.skip_format for c in configs):
        rust_files = [p for p in written if p.suffix == '.rs']
        dart_files = _unique(Path(c.dart_output_path) for c in configs)
        logger.info("Formatting %d Rust and %d Dart files", len(rust_files), len(dart_files))
        format_rust(rust_files)
        format_dart(dart_files, configs[0].dart_format_line_length)

    for dart_root in _unique(c.dart_root for c in configs if c.build_runner):
        build_runner(dart_root)

    return _unique(written)
