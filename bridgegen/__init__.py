"""
Rust/Dart Bridge Generator Package

Reads an IR description of a Rust API and generates:
  1. Rust wire code for the native (io) and wasm targets
  2. C headers for the native exports, prefixed per module
  3. Linkage anchors keeping the exports alive through dead-code elimination
  4. Dart FFI bindings via cbindgen + ffigen
"""

from .target import Target, Acc
from .types import IrFile, IrFunc, IrField, IrStruct, IrEnum, IrVariant
from .parser import IRParser
from .type_mapper import TypeMapper
from .config import Opts, load_config
from .rust_generator import RustGenerator
from .c_generator import AnchorGenerator
from .pipeline import generate
from .errors import BridgeError

__all__ = [
    'Target', 'Acc',
    'IrFile', 'IrFunc', 'IrField', 'IrStruct', 'IrEnum', 'IrVariant',
    'IRParser', 'TypeMapper', 'Opts', 'load_config',
    'RustGenerator', 'AnchorGenerator', 'generate',
    'BridgeError',
]
