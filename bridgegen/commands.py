"""External tool orchestration: cbindgen, ffigen, formatters and build_runner"""

import json
import logging
import os
import re
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Sequence, Union

import yaml

from .command_runner import ToolResult, execute_command
from .dart_repository import (
    FFI_REQUIREMENT,
    FFIGEN_REQUIREMENT,
    DartRepository,
    DependencyMode,
)
from .errors import (
    BindingGeneratorToolchainError,
    BridgeError,
    ExternalToolError,
    GenericToolFailure,
)
from .utils import write_atomic

logger = logging.getLogger(__name__)

SYS_INCLUDES = ["stdbool.h", "stdint.h", "stdlib.h"]

# <return type> <identifier>(<args>);
C_FUNCTION_PATTERN = re.compile(r'(\w+ \*?)(\w+)(\([\w\s*,]*\);)')

FFIGEN_LLVM_MISSING = "Couldn't find dynamic library in default locations."

FFIGEN_LINT_IGNORES = ", ".join([
    "camel_case_types",
    "non_constant_identifier_names",
    "avoid_positional_boolean_parameters",
    "annotate_overrides",
    "constant_identifier_names",
])


def ensure_tools_available(dart_root: str, skip_deps_check: bool) -> None:
    """Fail early unless the Dart toolchain and both support packages are usable"""
    repo = DartRepository.from_path(dart_root)
    repo.ensure_toolchain()

    if not skip_deps_check:
        repo.has_specified("ffi", DependencyMode.MAIN, FFI_REQUIREMENT)
        repo.has_installed("ffi", DependencyMode.MAIN, FFI_REQUIREMENT)

        repo.has_specified("ffigen", DependencyMode.DEV, FFIGEN_REQUIREMENT)
        repo.has_installed("ffigen", DependencyMode.DEV, FFIGEN_REQUIREMENT)


@dataclass
class BindgenArgs:
    rust_crate_dir: str
    c_output_path: str
    dart_output_path: str
    dart_class_name: str
    c_struct_names: list[str]
    prefix: str
    exclude_symbols: list[str] = field(default_factory=list)
    foreign_prefixes: list[str] = field(default_factory=list)
    llvm_paths: list[str] = field(default_factory=list)
    llvm_compiler_opts: str = ""


def bindgen_rust_to_dart(args: BindgenArgs, dart_root: str) -> None:
    cbindgen(args.rust_crate_dir, args.c_output_path, args.c_struct_names,
             args.exclude_symbols, args.prefix, args.foreign_prefixes)
    ffigen(args.c_output_path, args.dart_output_path, args.dart_class_name,
           args.llvm_paths, args.llvm_compiler_opts, dart_root)


def _toml_str(value: str) -> str:
    return json.dumps(value)


def _toml_list(values: list[str]) -> str:
    return "[" + ", ".join(_toml_str(v) for v in values) + "]"


def render_cbindgen_config(c_struct_names: list[str], exclude_symbols: list[str], prefix: str) -> str:
    """cbindgen.toml; the export prefix covers type names only, not functions"""
    lines = [
        'language = "C"',
        f"sys_includes = {_toml_list(SYS_INCLUDES)}",
        "no_includes = true",
        # opaque Dart_Handle, as declared by dart_api.h
        f"after_includes = {_toml_str(f'typedef struct _Dart_Handle* {prefix}Dart_Handle;')}",
        "",
        "[export]",
        f"include = {_toml_list(c_struct_names)}",
        f"exclude = {_toml_list(exclude_symbols)}",
        f"prefix = {_toml_str(prefix)}",
        "",
    ]
    return "\n".join(lines)


def prefix_c_functions(header: str, prefix: str, foreign_prefixes: Sequence[str] = ()) -> str:
    """Give every function declared in `header` the module prefix, exactly once.

    Functions already carrying `prefix` or the prefix of another module in the
    same crate are left as they are.
    """
    owned = (prefix, *foreign_prefixes)

    def rename(m: re.Match) -> str:
        name = m.group(2)
        if name.startswith(owned):
            return m.group(0)
        return f"{m.group(1)}{prefix}{name}{m.group(3)}"

    marker = f"// {prefix}\n"
    prefixed = C_FUNCTION_PATTERN.sub(rename, header)
    if prefixed.startswith(marker):
        return prefixed
    return marker + prefixed


def _canonical_crate_dir(rust_crate_dir: str) -> str:
    path = str(Path(rust_crate_dir).resolve())
    # cbindgen rejects Windows extended-length paths
    if path.startswith("\\\\?\\"):
        path = path[len("\\\\?\\"):]
    return path


def cbindgen(rust_crate_dir: str, c_output_path: str, c_struct_names: list[str],
             exclude_symbols: list[str], prefix: str, foreign_prefixes: Sequence[str] = ()) -> None:
    logger.debug("execute cbindgen rust_crate_dir=%s c_output_path=%s", rust_crate_dir, c_output_path)
    config = render_cbindgen_config(c_struct_names, exclude_symbols, prefix)
    logger.debug("cbindgen config:\n%s", config)

    with tempfile.TemporaryDirectory(prefix="bridgegen-") as tmp:
        config_path = Path(tmp) / "cbindgen.toml"
        config_path.write_text(config, encoding='utf-8')
        header_path = Path(tmp) / Path(c_output_path).name
        res = execute_command("cbindgen", [
            "--config", config_path,
            "--lang", "c",
            "--output", header_path,
            _canonical_crate_dir(rust_crate_dir),
        ])
        if not res.success:
            raise ExternalToolError("cbindgen", res.stderr)
        if not header_path.exists():
            raise ExternalToolError("cbindgen", "cbindgen failed writing file")
        generated = header_path.read_text(encoding='utf-8')

    write_atomic(c_output_path, prefix_c_functions(generated, prefix, foreign_prefixes))


def render_ffigen_config(c_path: str, dart_path: str, dart_class_name: str,
                         llvm_paths: list[str], llvm_compiler_opts: str) -> str:
    config = {
        'output': dart_path,
        'name': dart_class_name,
        'description': 'generated by bridgegen',
        'headers': {
            'entry-points': [c_path],
            'include-directives': [c_path],
        },
        'comments': False,
        'preamble': f"// ignore_for_file: {FFIGEN_LINT_IGNORES}\n",
    }
    if llvm_paths:
        config['llvm-path'] = list(llvm_paths)
    if llvm_compiler_opts:
        config['compiler-opts'] = [llvm_compiler_opts]
    return yaml.safe_dump(config, sort_keys=False)


def classify_ffigen_failure(result: ToolResult) -> BridgeError:
    """Map a failed ffigen run to the error the caller should act on"""
    if FFIGEN_LLVM_MISSING in result.stderr or FFIGEN_LLVM_MISSING in result.stdout:
        return BindingGeneratorToolchainError()
    return GenericToolFailure("ffigen", result.stdout, result.stderr)


def ffigen(c_path: str, dart_path: str, dart_class_name: str, llvm_paths: list[str],
           llvm_compiler_opts: str, dart_root: str) -> None:
    logger.debug("execute ffigen c_path=%s dart_path=%s llvm_path=%s", c_path, dart_path, llvm_paths)
    config = render_ffigen_config(c_path, dart_path, dart_class_name, llvm_paths, llvm_compiler_opts)
    logger.debug("ffigen config:\n%s", config)

    with tempfile.NamedTemporaryFile('w', suffix='.yaml', delete=False, encoding='utf-8') as f:
        f.write(config)
        config_path = f.name
    try:
        repo = DartRepository.from_path(dart_root)
        program, *run_args = repo.toolchain.as_run_command()
        res = execute_command(program, [*run_args, "run", "ffigen", "--config", config_path], cwd=dart_root)
    finally:
        os.unlink(config_path)
    if not res.success:
        raise classify_ffigen_failure(res)


def format_rust(paths: list[Union[str, Path]]) -> None:
    logger.debug("execute format_rust path=%s", paths)
    res = execute_command("rustfmt", paths)
    if not res.success:
        raise ExternalToolError("rustfmt", res.stderr)


def format_dart(paths: list[Union[str, Path]], line_length: int) -> None:
    logger.debug("execute format_dart path=%s line_length=%d", paths, line_length)
    res = execute_command("dart", ["format", "--line-length", str(line_length), *paths])
    if not res.success:
        raise ExternalToolError("dart format", res.stderr)


def build_runner(dart_root: str) -> None:
    logger.info("Running build_runner at %s", dart_root)
    repo = DartRepository.from_path(dart_root)
    program, *run_args = repo.toolchain.as_run_command()
    res = execute_command(
        program, [*run_args, "run", "build_runner", "build", "--delete-conflicting-outputs"], cwd=dart_root)
    if not res.success:
        raise GenericToolFailure(f"build_runner in {dart_root}", res.stdout, res.stderr)
