from pathlib import Path

import pytest
import yaml

from bridgegen import commands
from bridgegen.command_runner import ToolResult
from bridgegen.errors import (
    BindingGeneratorToolchainError,
    ExternalToolError,
    GenericToolFailure,
)

HEADER = """#include <stdbool.h>
#include <stdint.h>
#include <stdlib.h>

typedef struct P1_wire_uint_8_list {
  uint8_t *ptr;
  int32_t len;
} P1_wire_uint_8_list;

void wire_add(int64_t port_, int32_t a, int32_t b);

struct P1_wire_uint_8_list *new_uint_8_list_0(int32_t len);

void free_WireSyncReturn(WireSyncReturn ptr);
"""


class Recorder:
    """Stands in for execute_command, replaying canned results"""

    def __init__(self, *results, on_call=None):
        self.results = list(results)
        self.calls = []
        self.on_call = on_call

    def __call__(self, program, args, cwd=None):
        command = [program, *(str(a) for a in args)]
        self.calls.append((command, cwd))
        if self.on_call:
            self.on_call(command)
        return self.results.pop(0)


def ok(stdout="", stderr=""):
    return ToolResult(args=[], returncode=0, stdout=stdout, stderr=stderr)


def failed(stdout="", stderr=""):
    return ToolResult(args=[], returncode=1, stdout=stdout, stderr=stderr)


def test_prefix_c_functions():
    text = commands.prefix_c_functions(HEADER, "P1_")
    assert text.startswith("// P1_\n")
    assert "void P1_wire_add(int64_t port_, int32_t a, int32_t b);" in text
    assert "struct P1_wire_uint_8_list *P1_new_uint_8_list_0(int32_t len);" in text
    assert "void P1_free_WireSyncReturn(WireSyncReturn ptr);" in text
    assert "P1_P1_" not in text


def test_prefix_c_functions_skips_other_modules():
    header = "void P2_wire_add(int64_t port_, int32_t a, int32_t b);\nvoid wire_sub(int64_t port_);\n"
    text = commands.prefix_c_functions(header, "P1_", ["P2_"])
    assert "void P2_wire_add(int64_t port_, int32_t a, int32_t b);" in text
    assert "void P1_wire_sub(int64_t port_);" in text
    assert "P1_P2_" not in text


def test_prefix_c_functions_is_idempotent():
    once = commands.prefix_c_functions(HEADER, "P1_")
    assert commands.prefix_c_functions(once, "P1_") == once
    assert once.count("// P1_\n") == 1


def test_cbindgen_config():
    config = commands.render_cbindgen_config(["wire_uint_8_list"], ["Foo"], "P1_")
    assert 'language = "C"' in config
    assert 'sys_includes = ["stdbool.h", "stdint.h", "stdlib.h"]' in config
    assert "no_includes = true" in config
    assert 'after_includes = "typedef struct _Dart_Handle* P1_Dart_Handle;"' in config
    assert 'include = ["wire_uint_8_list"]' in config
    assert 'exclude = ["Foo"]' in config
    assert 'prefix = "P1_"' in config


def test_cbindgen_writes_prefixed_header(tmp_path, monkeypatch):
    def write_header(command):
        output = command[command.index("--output") + 1]
        with open(output, "w") as f:
            f.write(HEADER)

    recorder = Recorder(ok(), on_call=write_header)
    monkeypatch.setattr(commands, "execute_command", recorder)
    out = tmp_path / "ios" / "bridge.h"

    commands.cbindgen(str(tmp_path), str(out), ["wire_uint_8_list"], [], "P1_")

    command, _ = recorder.calls[0]
    assert command[0] == "cbindgen"
    assert command[command.index("--lang") + 1] == "c"
    assert command[-1] == str(tmp_path.resolve())
    text = out.read_text()
    assert text.startswith("// P1_\n")
    assert "void P1_wire_add(" in text


def test_cbindgen_failure(tmp_path, monkeypatch):
    monkeypatch.setattr(commands, "execute_command", Recorder(failed(stderr="parse error")))
    out = tmp_path / "bridge.h"
    with pytest.raises(ExternalToolError, match="parse error"):
        commands.cbindgen(str(tmp_path), str(out), [], [], "P1_")
    assert not out.exists()


def test_cbindgen_without_output(tmp_path, monkeypatch):
    monkeypatch.setattr(commands, "execute_command", Recorder(ok()))
    with pytest.raises(ExternalToolError, match="failed writing file"):
        commands.cbindgen(str(tmp_path), str(tmp_path / "bridge.h"), [], [], "P1_")


def test_ffigen_config():
    config = yaml.safe_load(commands.render_ffigen_config(
        "ios/bridge.h", "lib/bridge.dart", "Api", ["/usr/lib/llvm-14"], "-I/opt/include"))
    assert config['output'] == "lib/bridge.dart"
    assert config['name'] == "Api"
    assert config['headers'] == {'entry-points': ["ios/bridge.h"], 'include-directives': ["ios/bridge.h"]}
    assert config['comments'] is False
    assert config['preamble'].startswith("// ignore_for_file: camel_case_types, non_constant_identifier_names")
    assert config['llvm-path'] == ["/usr/lib/llvm-14"]
    assert config['compiler-opts'] == ["-I/opt/include"]


def test_ffigen_config_optional_keys():
    config = yaml.safe_load(commands.render_ffigen_config("a.h", "a.dart", "Api", [], ""))
    assert 'llvm-path' not in config
    assert 'compiler-opts' not in config


@pytest.mark.parametrize("result, error", [
    (failed(stderr="Couldn't find dynamic library in default locations."), BindingGeneratorToolchainError),
    (failed(stdout="SEVERE: Couldn't find dynamic library in default locations.\n"), BindingGeneratorToolchainError),
    (failed(stdout="out", stderr="boom"), GenericToolFailure),
])
def test_classify_ffigen_failure(result, error):
    assert isinstance(commands.classify_ffigen_failure(result), error)


def test_generic_failure_carries_both_streams():
    exc = commands.classify_ffigen_failure(failed(stdout="out", stderr="boom"))
    assert exc.stdout == "out"
    assert exc.stderr == "boom"


def test_ffigen_runs_with_toolchain(tmp_path, monkeypatch):
    (tmp_path / "pubspec.yaml").write_text("name: app\ndependencies:\n  flutter:\n    sdk: flutter\n")
    seen_config = {}

    def capture(command):
        seen_config.update(yaml.safe_load(Path(command[-1]).read_text()))

    recorder = Recorder(ok(), on_call=capture)
    monkeypatch.setattr(commands, "execute_command", recorder)

    commands.ffigen("ios/bridge.h", "lib/bridge.dart", "Api", [], "", str(tmp_path))

    command, cwd = recorder.calls[0]
    assert command[:5] == ["flutter", "pub", "run", "ffigen", "--config"]
    assert cwd == str(tmp_path)
    assert seen_config['name'] == "Api"
    # temp config is removed afterwards
    assert not Path(command[-1]).exists()


def test_ffigen_missing_llvm(tmp_path, monkeypatch):
    (tmp_path / "pubspec.yaml").write_text("name: app\n")
    monkeypatch.setattr(commands, "execute_command", Recorder(
        failed(stderr="Couldn't find dynamic library in default locations.")))
    with pytest.raises(BindingGeneratorToolchainError):
        commands.ffigen("a.h", "a.dart", "Api", [], "", str(tmp_path))


def test_formatters(monkeypatch):
    recorder = Recorder(ok(), ok())
    monkeypatch.setattr(commands, "execute_command", recorder)
    commands.format_rust(["a.rs", "b.rs"])
    commands.format_dart(["a.dart"], 120)
    assert recorder.calls[0][0] == ["rustfmt", "a.rs", "b.rs"]
    assert recorder.calls[1][0] == ["dart", "format", "--line-length", "120", "a.dart"]


def test_formatter_failure(monkeypatch):
    monkeypatch.setattr(commands, "execute_command", Recorder(failed(stderr="syntax")))
    with pytest.raises(ExternalToolError, match="rustfmt failed: syntax"):
        commands.format_rust(["a.rs"])


def test_build_runner(tmp_path, monkeypatch):
    (tmp_path / "pubspec.yaml").write_text("name: app\n")
    recorder = Recorder(ok())
    monkeypatch.setattr(commands, "execute_command", recorder)
    commands.build_runner(str(tmp_path))
    assert recorder.calls[0][0] == ["dart", "run", "build_runner", "build", "--delete-conflicting-outputs"]

    monkeypatch.setattr(commands, "execute_command", Recorder(failed(stdout="o", stderr="e")))
    with pytest.raises(GenericToolFailure):
        commands.build_runner(str(tmp_path))
