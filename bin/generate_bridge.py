#!/usr/bin/env python3
"""
Rust/Dart Bridge Generator

Reads an IR description of a Rust API and generates:
  1. Rust wire code (shared, native io and wasm files)
  2. C header for the native exports, with linkage anchors
  3. Dart FFI bindings (through ffigen)

Usage:
    python generate_bridge.py api.yaml --rust-output native/src/bridge_generated.rs \
        --dart-output lib/bridge_generated.dart --c-output ios/Runner/bridge_generated.h
    python generate_bridge.py --config bridge.yaml
"""

import sys
from pathlib import Path

# Add parent directory to path so bridgegen package can be found
sys.path.insert(0, str(Path(__file__).parent.parent))

from bridgegen.cli import main


if __name__ == "__main__":
    sys.exit(main())
