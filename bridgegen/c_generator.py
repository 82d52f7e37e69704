"""C Generator - linkage anchors appended to the generated C headers.

The managed side resolves wire functions by name at load time, so nothing in
native code calls them. An anchor function takes the address of every one of
them, which keeps link-time dead-code elimination from dropping the symbols.
"""

import os
import posixpath
import re
from pathlib import Path

from .config import Opts

WIRE_FUNC_PATTERN = re.compile(r'wire_\w+')


def anchor_signature(api_block_name: str) -> str:
    if not api_block_name:
        return "dummy_method_to_enforce_bundling"
    return f"dummy_method_to_enforce_bundling_{api_block_name}"


def anchor_func(name: str, func_names: list[str]) -> str:
    lines = [
        f"static int64_t {name}(void) {{",
        "    int64_t dummy_var = 0;",
        *[f"    dummy_var ^= ((int64_t) (void*) {func_name});" for func_name in func_names],
        "    return dummy_var;",
        "}",
        "",
    ]
    return "\n".join(lines)


class AnchorGenerator:
    """Generates the anchor function(s) for one module's C header"""

    def __init__(self, config: Opts, all_configs: list[Opts], func_names: list[str],
                 c_path_index: int = 0):
        self.config = config
        self.all_configs = all_configs
        self.func_names = func_names
        self.c_path_index = c_path_index

    def _prefixed(self, func_name: str) -> str:
        prefix = self.config.symbol_prefix
        if WIRE_FUNC_PATTERN.match(func_name) and not func_name.startswith(prefix):
            return f"{prefix}{func_name}"
        return func_name

    def _include_line(self, other: Opts) -> str:
        """`#include` of another module's header, relative to this module's header"""
        src_dir = Path(self.config.c_output_paths[self.c_path_index]).parent
        dst = Path(other.c_output_paths[self.c_path_index])
        relative = Path(os.path.relpath(dst.parent, src_dir)).as_posix()
        return f'#include "{posixpath.normpath(posixpath.join(relative, dst.name))}"'

    def generate(self) -> str:
        prefix = self.config.symbol_prefix
        func_names = [self._prefixed(name) for name in self.func_names]

        if len(self.all_configs) <= 1:
            return anchor_func(f"{prefix}{anchor_signature('')}", func_names)

        module_anchor = anchor_func(f"{prefix}{anchor_signature(self.config.class_name)}", func_names)
        if not self.config.is_root:
            return module_anchor

        includes = [self._include_line(other) for other in self.all_configs if not other.is_root]
        module_anchors = [
            f"{other.symbol_prefix}{anchor_signature(other.class_name)}" for other in self.all_configs
        ]
        return "\n".join([
            module_anchor,
            *includes,
            anchor_func(f"{prefix}{anchor_signature('')}", module_anchors),
        ])
