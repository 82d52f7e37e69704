import sys
from pathlib import Path

import pytest

# Add repository root to path so bridgegen package can be found
sys.path.insert(0, str(Path(__file__).parent.parent))

from bridgegen.config import Opts
from bridgegen.parser import IRParser
from bridgegen.ty_generator import GeneratorContext

SAMPLE_IR = """
enums:
  - name: Weekday
    variants: [Monday, Tuesday, Wednesday]
structs:
  - name: Point
    fields:
      - {name: x, type: f64}
      - {name: y, type: f64}
funcs:
  - name: add
    inputs:
      - {name: a, type: i32}
      - {name: b, type: i32}
    output: i32
  - name: greet
    inputs:
      - {name: names, type: Vec<String>}
    output: String
  - name: next_day
    inputs:
      - {name: day, type: Weekday}
    output: Weekday
  - name: shift
    inputs:
      - {name: at, type: NaiveDateTime}
      - {name: by, type: chrono::Duration}
    output: DateTime<Utc>
  - name: centroid
    inputs:
      - {name: points, type: Vec<Point>}
      - {name: raw, type: ZeroCopyBuffer<Vec<u8>>}
    output: Point
"""


def make_opts(tmp_path: Path, name: str = "api", block_index: int = 0, **kwargs) -> Opts:
    values = dict(
        ir_path=str(tmp_path / f"{name}.yaml"),
        rust_output_path=str(tmp_path / "native" / "src" / f"bridge_generated_{name}.rs"),
        dart_output_path=str(tmp_path / "lib" / f"bridge_generated_{name}.dart"),
        c_output_paths=[str(tmp_path / "ios" / f"bridge_generated_{name}.h")],
        dart_root=str(tmp_path),
        rust_crate_dir=str(tmp_path / "native"),
        class_name=name.capitalize(),
        block_index=block_index,
        unique_id="P7C55DD6B",
    )
    values.update(kwargs)
    return Opts(**values)


@pytest.fixture
def opts(tmp_path):
    return make_opts(tmp_path)


@pytest.fixture
def sample_ir():
    return IRParser(SAMPLE_IR).parse()


@pytest.fixture
def context(sample_ir, opts):
    return GeneratorContext(sample_ir, opts)
