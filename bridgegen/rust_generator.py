"""Rust Generator - assembles the shared, io and wasm Rust sources of one module"""

import logging
from pathlib import Path
from typing import Optional

from .config import Opts
from .target import Acc, Target
from .ty_generator import (
    ExternFuncCollector,
    GeneratorContext,
    StructRefGenerator,
    generator_for,
    indent,
)
from .types import IrFile, IrFunc, IrType, IrTypePrimitive, is_primitive_wire

logger = logging.getLogger(__name__)

SUPPORT_CRATE = "flutter_rust_bridge"

LINT_ALLOWANCES = ", ".join([
    "non_camel_case_types",
    "unused",
    "clippy::redundant_closure",
    "clippy::useless_conversion",
    "clippy::unit_arg",
    "clippy::double_parens",
    "non_snake_case",
    "clippy::too_many_arguments",
])


def section(name: str) -> list[str]:
    return [f"// Section: {name}", ""]


def execution_section(name: str) -> Acc[list[str]]:
    """Section header shared by the io and wasm files"""
    return Acc.distribute(section(name))


def as_lines(acc: Acc[str]) -> Acc[list[str]]:
    return acc.map(lambda code, target: [code])


class RustGenerator:
    """Generates the Rust side of the bridge for every target"""

    def __init__(self, ir_file: IrFile, config: Opts):
        self.ir_file = ir_file
        self.config = config
        self.context = GeneratorContext(ir_file, config)
        self.collector = ExternFuncCollector(config.symbol_prefix)
        self.wire_struct_names: list[str] = []

    @property
    def extern_func_names(self) -> list[str]:
        """Exported io symbols, in generation order"""
        return list(self.collector.names)

    def generate(self) -> Acc[str]:
        input_types = self.ir_file.distinct_types(outputs=False)
        output_types = self.ir_file.distinct_types(inputs=False)
        all_types = self.ir_file.distinct_types()
        logger.debug(
            "generating module %s (block %d): %d functions, %d types",
            self.config.class_name, self.config.block_index, len(self.ir_file.funcs), len(all_types),
        )

        wire_funcs = Acc.join(self._wire_funcs(func) for func in self.ir_file.funcs)
        allocate_funcs = Acc.join(
            generator_for(ty, self.context).allocate_funcs(self.collector, self.config.block_index)
            for ty in input_types
        )
        wire2api = Acc.join(self._wire2api_impl(ty) for ty in input_types)

        files = (
            Acc.distribute(["use super::*;"])
            + execution_section("wire functions") + as_lines(wire_funcs)
            + execution_section("allocate functions") + as_lines(allocate_funcs)
            + execution_section("related functions")
            + execution_section("impl Wire2Api") + as_lines(Acc(io=wire2api.io, wasm=wire2api.wasm))
            + Acc(
                common=self._generate_common(output_types, all_types, wire2api.common),
                io=self._io_tail(input_types),
                wasm=self._wasm_tail(input_types),
            )
        )
        if not self.config.wasm_enabled:
            files.wasm = None
        return files.map(lambda lines, target: "\n".join(lines))

    def _generate_common(self, output_types: list[IrType], all_types: list[IrType],
                         wire2api: Optional[str]) -> list[str]:
        generators = [generator_for(ty, self.context) for ty in all_types]
        imports = sorted({i for i in (g.imports() for g in generators) if i})
        wrappers = sorted({w for w in (g.wrapper_struct() for g in generators) if w})
        checks = [c for c in (g.static_checks() for g in generators) if c]

        lines = [
            f"#![allow({LINT_ALLOWANCES})]",
            "// AUTO-GENERATED - DO NOT EDIT",
            "",
            f"use {self.config.rust_input_module}::*;",
            "use core::panic::UnwindSafe;",
            "use std::ffi::c_void;",
            "use std::sync::Arc;",
            f"use {SUPPORT_CRATE}::*;",
            "",
        ]
        lines += section("imports")
        lines += imports + ([""] if imports else [])

        lines += section("wire functions")
        for func in self.ir_file.funcs:
            lines.append(self._wire_impl_func(func))

        lines += section("wrapper structs")
        for wrapper in wrappers:
            src = next(g for g in generators if g.wrapper_struct() == wrapper)
            lines += ["#[derive(Clone)]", f"struct {wrapper}({src.ty.rust_api_type()});", ""]

        lines += section("static checks")
        if checks:
            lines += ["const _: fn() = || {", *[indent(c) for c in checks], "};", ""]

        lines += section("impl Wire2Api")
        lines += [
            "pub trait Wire2Api<T> {",
            "    fn wire2api(self) -> T;",
            "}",
            "",
        ]
        if wire2api:
            lines.append(wire2api)

        lines += section("impl IntoDart")
        for ty in output_types:
            code = generator_for(ty, self.context).impl_intodart()
            if code:
                lines += [code, ""]

        lines += section("executor")
        lines += [
            "support::lazy_static! {",
            "    pub static ref FLUTTER_RUST_BRIDGE_HANDLER: support::DefaultHandler = Default::default();",
            "}",
            "",
        ]
        lines += self._target_modules()
        return lines

    def _target_modules(self) -> list[str]:
        io_file = Path(self.config.io_output_path).name
        lines = [
            "#[cfg(not(target_family = \"wasm\"))]",
            f'#[path = "{io_file}"]',
            "mod io;",
            "#[cfg(not(target_family = \"wasm\"))]",
            "pub use io::*;",
        ]
        if self.config.wasm_enabled:
            wasm_file = Path(self.config.wasm_output_path).name
            lines += [
                "#[cfg(target_family = \"wasm\")]",
                f'#[path = "{wasm_file}"]',
                "mod web;",
                "#[cfg(target_family = \"wasm\")]",
                "pub use web::*;",
            ]
        lines.append("")
        return lines

    def _wire_impl_func(self, func: IrFunc) -> str:
        """Shared `_impl` decoding the arguments and dispatching to the handler"""
        params = ["port_: MessagePort"] + [
            f"{f.name}: impl Wire2Api<{f.ty.rust_api_type()}> + UnwindSafe" for f in func.inputs
        ]
        decode = [f"            let api_{f.name} = {f.name}.wire2api();" for f in func.inputs]
        call = f"{func.name}({', '.join(f'api_{f.name}' for f in func.inputs)})"
        result = generator_for(func.output, self.context).wrap_obj(call)
        lines = [
            f"fn {self.config.symbol_prefix}wire_{func.name}_impl({', '.join(params)}) {{",
            "    FLUTTER_RUST_BRIDGE_HANDLER.wrap(",
            "        WrapInfo {",
            f'            debug_name: "{func.name}",',
            "            port: Some(port_),",
            "            mode: FfiCallMode::Normal,",
            "        },",
            "        move || {",
            *decode,
            f"            move |task_callback| Ok({result})",
            "        },",
            "    )",
            "}",
            "",
        ]
        return "\n".join(lines)

    def _wire_funcs(self, func: IrFunc) -> Acc[str]:
        """Exported symbols forwarding to the shared `_impl`"""
        args = ", ".join(["port_"] + [f.name for f in func.inputs])
        body = f"{self.config.symbol_prefix}wire_{func.name}_impl({args})"

        def render(port: str, target: Target) -> str:
            params = [port] + [f"{f.name}: {f.ty.rust_wire_param_type(target)}" for f in func.inputs]
            return self.collector.generate(f"wire_{func.name}", params, None, body, target)

        return Acc(io="port_: i64", wasm="port_: MessagePort").map(render)

    def _wire2api_impl(self, ty: IrType) -> Acc[str]:
        api = ty.rust_api_type()

        def render(body: str, target: Target) -> str:
            wire_target = Target.IO if target is Target.COMMON else target
            return "\n".join([
                f"impl Wire2Api<{api}> for {ty.rust_wire_param_type(wire_target)} {{",
                f"    fn wire2api(self) -> {api} {{",
                indent(body, 8),
                "    }",
                "}",
                "",
            ])

        return generator_for(ty, self.context).wire2api_body().map(render)

    def _io_tail(self, input_types: list[IrType]) -> list[str]:
        lines = section("wire structs")
        structs = []
        for ty in input_types:
            fields = generator_for(ty, self.context).wire_struct_fields()
            if fields is None:
                continue
            name = ty.rust_wire_type(Target.IO)
            if name not in self.wire_struct_names:
                self.wire_struct_names.append(name)
            structs.append(ty)
            lines += [
                "#[repr(C)]",
                "#[derive(Clone)]",
                f"pub struct {name} {{",
                *[f"    {field_name}: {field_type}," for field_name, field_type in fields],
                "}",
                "",
            ]

        lines += section("impl NewWithNullPtr")
        lines += [
            "pub trait NewWithNullPtr {",
            "    fn new_with_null_ptr() -> Self;",
            "}",
            "",
            "impl<T> NewWithNullPtr for *mut T {",
            "    fn new_with_null_ptr() -> Self {",
            "        std::ptr::null_mut()",
            "    }",
            "}",
            "",
        ]
        for ty in structs:
            generator = generator_for(ty, self.context)
            if isinstance(generator, StructRefGenerator):
                lines += [generator.new_with_null_ptr(), ""]
        return lines

    def _wasm_tail(self, input_types: list[IrType]) -> list[str]:
        lines = section("impl Wire2Api for JsValue")
        for ty in input_types:
            body = self._jsvalue_body(ty)
            if body is None:
                continue
            api = ty.rust_api_type()
            lines += [
                f"impl Wire2Api<{api}> for JsValue {{",
                f"    fn wire2api(self) -> {api} {{",
                indent(body, 8),
                "    }",
                "}",
                "",
            ]
        return lines

    def _jsvalue_body(self, ty: IrType) -> Optional[str]:
        wire = ty.rust_wire_type(Target.WASM)
        # JsValue-typed wires are already covered by the plain Wire2Api impl
        if wire == 'JsValue' or ty is IrTypePrimitive.UNIT:
            return None
        body = generator_for(ty, self.context).wire2api_jsvalue()
        if body is not None:
            return body
        if is_primitive_wire(ty, Target.WASM):
            return f"(self.unchecked_into_f64() as {wire}).wire2api()"
        return None
