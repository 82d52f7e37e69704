"""Generator options for one or more bridge modules"""

import hashlib
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml

from .errors import ConfigError

logger = logging.getLogger(__name__)


def stable_unique_id(seed: str) -> str:
    """Short upper-hex id such as `P7C55DD6B`, stable for a given seed"""
    digest = hashlib.sha256(seed.encode('utf-8')).hexdigest()
    return f"P{digest[:8].upper()}"


@dataclass
class Opts:
    """Options of a single generated module (one API block)"""
    ir_path: str
    rust_output_path: str
    dart_output_path: str
    c_output_paths: list[str]
    dart_root: str
    rust_crate_dir: str
    class_name: str
    block_index: int = 0
    unique_id: str = ""
    rust_input_module: str = "crate::api"
    llvm_paths: list[str] = field(default_factory=list)
    llvm_compiler_opts: str = ""
    exclude_symbols: list[str] = field(default_factory=list)
    skip_deps_check: bool = False
    wasm_enabled: bool = True
    dart_format_line_length: int = 80
    skip_format: bool = False
    build_runner: bool = False

    def __post_init__(self):
        if not self.unique_id:
            self.unique_id = stable_unique_id(self.ir_path)
        if not re.fullmatch(r'[A-Za-z_]\w*', self.unique_id):
            raise ConfigError(f"unique_id must be a valid C identifier: {self.unique_id!r}")
        if not self.c_output_paths:
            raise ConfigError("at least one C output path is required")

    @property
    def symbol_prefix(self) -> str:
        return f"{self.unique_id}_"

    @property
    def is_root(self) -> bool:
        return self.block_index == 0

    @property
    def io_output_path(self) -> str:
        return str(_with_suffix(self.rust_output_path, '.io.rs'))

    @property
    def wasm_output_path(self) -> str:
        return str(_with_suffix(self.rust_output_path, '.web.rs'))


def _with_suffix(path: str, suffix: str) -> Path:
    p = Path(path)
    return p.with_name(p.name[:-len('.rs')] + suffix if p.name.endswith('.rs') else p.name + suffix)


def _find_upwards(start: Path, marker: str) -> Optional[Path]:
    for directory in [start, *start.parents]:
        if (directory / marker).exists():
            return directory
    return None


def _as_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value]
    return [str(value)]


def _camel_case(stem: str) -> str:
    return "".join(part[:1].upper() + part[1:] for part in re.split(r'[^0-9A-Za-z]+', stem) if part)


def opts_from_mapping(data: dict[str, Any], block_index: int, base_dir: Path) -> Opts:
    """Build Opts from a config mapping; relative paths resolve against base_dir"""
    for key in ('ir', 'rust_output', 'dart_output', 'c_output'):
        if not data.get(key):
            raise ConfigError(f"module {block_index}: missing required option '{key}'")

    def resolve(value: str) -> str:
        return str(base_dir / value) if not Path(value).is_absolute() else value

    ir_path = resolve(str(data['ir']))
    rust_output = resolve(str(data['rust_output']))
    dart_output = resolve(str(data['dart_output']))

    dart_root = data.get('dart_root')
    if dart_root:
        dart_root = resolve(str(dart_root))
    else:
        found = _find_upwards(Path(dart_output).parent, 'pubspec.yaml')
        if found is None:
            raise ConfigError(f"cannot find pubspec.yaml above {dart_output}; set dart_root")
        dart_root = str(found)

    crate_dir = data.get('rust_crate_dir')
    if crate_dir:
        crate_dir = resolve(str(crate_dir))
    else:
        found = _find_upwards(Path(rust_output).parent, 'Cargo.toml')
        if found is None:
            raise ConfigError(f"cannot find Cargo.toml above {rust_output}; set rust_crate_dir")
        crate_dir = str(found)

    return Opts(
        ir_path=ir_path,
        rust_output_path=rust_output,
        dart_output_path=dart_output,
        c_output_paths=[resolve(p) for p in _as_list(data['c_output'])],
        dart_root=dart_root,
        rust_crate_dir=crate_dir,
        class_name=str(data.get('class_name') or _camel_case(Path(ir_path).stem)),
        block_index=block_index,
        unique_id=str(data.get('unique_id') or ""),
        rust_input_module=str(data.get('rust_input_module', "crate::api")),
        llvm_paths=_as_list(data.get('llvm_path')),
        llvm_compiler_opts=str(data.get('llvm_compiler_opts') or ""),
        exclude_symbols=_as_list(data.get('exclude_symbols')),
        skip_deps_check=bool(data.get('skip_deps_check', False)),
        wasm_enabled=bool(data.get('wasm', True)),
        dart_format_line_length=int(data.get('dart_format_line_length', 80)),
        skip_format=bool(data.get('skip_format', False)),
        build_runner=bool(data.get('build_runner', False)),
    )


def validate_modules(configs: list[Opts]) -> None:
    """Modules linked into one binary need distinct names and matching C outputs"""
    if not configs:
        raise ConfigError("no modules configured")
    for attr in ('unique_id', 'class_name'):
        values = [getattr(c, attr) for c in configs]
        duplicates = sorted({v for v in values if values.count(v) > 1})
        if duplicates:
            raise ConfigError(f"duplicate {attr} across modules: {', '.join(duplicates)}")
    counts = {len(c.c_output_paths) for c in configs}
    if len(counts) > 1:
        raise ConfigError("every module must declare the same number of C outputs")


def load_config(path: Path) -> list[Opts]:
    """Load a YAML config holding one module mapping or a `modules:` list"""
    try:
        data = yaml.safe_load(path.read_text(encoding='utf-8'))
    except yaml.YAMLError as exc:
        raise ConfigError(f"invalid config file {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"config file {path} must contain a mapping")

    shared = {k: v for k, v in data.items() if k != 'modules'}
    entries = data.get('modules') or [{}]
    if not isinstance(entries, list) or not all(isinstance(e, dict) for e in entries):
        raise ConfigError(f"'modules' in {path} must be a list of mappings")
    configs = [
        opts_from_mapping({**shared, **entry}, index, path.parent)
        for index, entry in enumerate(entries)
    ]
    validate_modules(configs)
    logger.debug("loaded %d module(s) from %s", len(configs), path)
    return configs
