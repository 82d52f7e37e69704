"""Per-type Rust code generators.

Every IR type gets a generator exposing the same operation set; an
operation that means nothing for a type returns an empty result.
"""

import textwrap
from dataclasses import dataclass
from typing import Optional

from .config import Opts
from .target import Acc, Target
from .types import (
    IrFile,
    IrType,
    IrTypeDelegate,
    IrTypeEnumRef,
    IrTypeGeneralList,
    IrTypePrimitive,
    IrTypePrimitiveList,
    IrTypeStructRef,
    is_primitive_wire,
)


def indent(code: str, width: int = 4) -> str:
    return textwrap.indent(code, " " * width)


@dataclass
class GeneratorContext:
    ir_file: IrFile
    config: Opts


class ExternFuncCollector:
    """Renders exported functions and remembers the io symbol names"""

    def __init__(self, prefix: str):
        self.prefix = prefix
        self.names: list[str] = []

    def generate(self, func_name: str, params: list[str], return_type: Optional[str],
                 body: str, target: Target) -> str:
        name = f"{self.prefix}{func_name}"
        if target is Target.IO:
            attribute, head = "#[no_mangle]", 'pub extern "C" fn'
            if name not in self.names:
                self.names.append(name)
        else:
            attribute, head = "#[wasm_bindgen]", "pub fn"
        ret = f" -> {return_type}" if return_type else ""
        lines = [
            attribute,
            f"{head} {name}({', '.join(params)}){ret} {{",
            indent(body),
            "}",
            "",
        ]
        return "\n".join(lines)


def generate_list_allocate_func(collector: ExternFuncCollector, safe_ident: str,
                                list_ty: IrType, inner: IrType, block_index: int) -> str:
    """io allocator creating a `{ptr, len}` wire struct with `len` zeroed or null elements"""
    wire = list_ty.rust_wire_type(Target.IO)
    if is_primitive_wire(inner, Target.IO):
        element = "Default::default()"
    else:
        element = f"<{inner.rust_wire_param_type(Target.IO)}>::new_with_null_ptr()"
    body = "\n".join([
        f"let wrap = {wire} {{",
        f"    ptr: support::new_leak_vec_ptr({element}, len),",
        "    len,",
        "};",
        "support::new_leak_box_ptr(wrap)",
    ])
    return collector.generate(
        f"new_{safe_ident}_{block_index}", ["len: i32"], f"*mut {wire}", body, Target.IO)


class TypeGenerator:
    """Default no-op implementation of every per-type operation"""

    def __init__(self, ty: IrType, context: GeneratorContext):
        self.ty = ty
        self.context = context

    def wire2api_body(self) -> Acc[Optional[str]]:
        return Acc()

    def wire_struct_fields(self) -> Optional[list[tuple[str, str]]]:
        return None

    def allocate_funcs(self, collector: ExternFuncCollector, block_index: int) -> Acc[Optional[str]]:
        return Acc()

    def impl_intodart(self) -> str:
        return ""

    def wire2api_jsvalue(self) -> Optional[str]:
        """Decode from a `JsValue` on wasm; None means use a numeric cast"""
        return None

    def imports(self) -> Optional[str]:
        return None

    def wrapper_struct(self) -> Optional[str]:
        return None

    def wrap_obj(self, obj: str) -> str:
        return obj

    def self_access(self, obj: str) -> str:
        return obj

    def static_checks(self) -> Optional[str]:
        return None


class PrimitiveGenerator(TypeGenerator):

    def wire2api_body(self) -> Acc[Optional[str]]:
        if self.ty is IrTypePrimitive.UNIT:
            return Acc()
        # identical wire type on both targets, so one impl in the shared file
        return Acc(common="self")

    def wire2api_jsvalue(self) -> Optional[str]:
        return self.ty.js_value_cast()


class PrimitiveListGenerator(TypeGenerator):

    def wire2api_body(self) -> Acc[Optional[str]]:
        return Acc(
            io="\n".join([
                "unsafe {",
                "    let wrap = support::box_from_leak_ptr(self);",
                "    support::vec_from_leak_ptr(wrap.ptr, wrap.len)",
                "}",
            ]),
            wasm="self.into_vec()",
        )

    def wire_struct_fields(self) -> Optional[list[tuple[str, str]]]:
        return [("ptr", f"*mut {self.ty.primitive.rust_api_type()}"), ("len", "i32")]

    def allocate_funcs(self, collector: ExternFuncCollector, block_index: int) -> Acc[Optional[str]]:
        wire = self.ty.rust_wire_type(Target.IO)
        body = "\n".join([
            f"let ans = {wire} {{",
            "    ptr: support::new_leak_vec_ptr(Default::default(), len),",
            "    len,",
            "};",
            "support::new_leak_box_ptr(ans)",
        ])
        return Acc(io=collector.generate(
            f"new_{self.ty.safe_ident()}_{block_index}", ["len: i32"], f"*mut {wire}", body, Target.IO))

    def wire2api_jsvalue(self) -> Optional[str]:
        return f"self.unchecked_into::<js_sys::{self.ty.primitive.js_typed_array}>().to_vec().into()"


class GeneralListGenerator(TypeGenerator):
    WIRE2API_BODY_IO = "\n".join([
        "let vec = unsafe {",
        "    let wrap = support::box_from_leak_ptr(self);",
        "    support::vec_from_leak_ptr(wrap.ptr, wrap.len)",
        "};",
        "vec.into_iter().map(Wire2Api::wire2api).collect()",
    ])
    WIRE2API_BODY_WASM = "\n".join([
        "self.dyn_into::<JsArray>()",
        "    .unwrap()",
        "    .iter()",
        "    .map(Wire2Api::wire2api)",
        "    .collect()",
    ])

    def wire2api_body(self) -> Acc[Optional[str]]:
        return Acc(io=self.WIRE2API_BODY_IO, wasm=self.WIRE2API_BODY_WASM)

    def wire_struct_fields(self) -> Optional[list[tuple[str, str]]]:
        return [("ptr", f"*mut {self.ty.inner.rust_wire_param_type(Target.IO)}"), ("len", "i32")]

    def allocate_funcs(self, collector: ExternFuncCollector, block_index: int) -> Acc[Optional[str]]:
        return Acc(io=generate_list_allocate_func(
            collector, self.ty.safe_ident(), self.ty, self.ty.inner, block_index))


class StructRefGenerator(TypeGenerator):

    @property
    def struct(self):
        return self.ty.get(self.context.ir_file)

    def wire2api_body(self) -> Acc[Optional[str]]:
        st = self.struct
        io_fields = [f"    {f.name}: self.{f.name}.wire2api()," for f in st.fields]
        wasm_fields = [f"    {f.name}: self_.get({i}).wire2api()," for i, f in enumerate(st.fields)]
        count = len(st.fields)
        return Acc(
            io="\n".join([f"{st.name} {{", *io_fields, "}"]),
            wasm="\n".join([
                "let self_ = self.dyn_into::<JsArray>().unwrap();",
                f'assert_eq!(self_.length(), {count}, "Expected {count} elements, got {{}}", self_.length());',
                f"{st.name} {{",
                *wasm_fields,
                "}",
            ]),
        )

    def wire_struct_fields(self) -> Optional[list[tuple[str, str]]]:
        return [(f.name, f.ty.rust_wire_param_type(Target.IO)) for f in self.struct.fields]

    def impl_intodart(self) -> str:
        st = self.struct
        values = [
            f"            {generator_for(f.ty, self.context).wrap_obj(f'self.{f.name}')}.into_dart(),"
            for f in st.fields
        ]
        lines = [
            f"impl support::IntoDart for {st.name} {{",
            "    fn into_dart(self) -> support::DartAbi {",
            "        vec![",
            *values,
            "        ]",
            "        .into_dart()",
            "    }",
            "}",
            f"impl support::IntoDartExceptPrimitive for {st.name} {{}}",
        ]
        return "\n".join(lines)

    def new_with_null_ptr(self) -> str:
        """`NewWithNullPtr` impl for the io wire struct"""
        values = []
        for f in self.struct.fields:
            default = "Default::default()" if is_primitive_wire(f.ty, Target.IO) \
                else "NewWithNullPtr::new_with_null_ptr()"
            values.append(f"            {f.name}: {default},")
        lines = [
            f"impl NewWithNullPtr for {self.ty.rust_wire_type(Target.IO)} {{",
            "    fn new_with_null_ptr() -> Self {",
            "        Self {",
            *values,
            "        }",
            "    }",
            "}",
        ]
        return "\n".join(lines)


class EnumRefGenerator(TypeGenerator):
    """Structural scaffolding for enums.

    Fieldless enums are decoded as PrimitiveEnum delegates, which reuse the
    hooks below unchanged.
    """

    @property
    def enum(self):
        return self.ty.get(self.context.ir_file)

    def imports(self) -> Optional[str]:
        if self.enum.path:
            return f"use {self.enum.path};"
        return None

    def wrapper_struct(self) -> Optional[str]:
        return self.enum.wrapper_name

    def wrap_obj(self, obj: str) -> str:
        wrapper = self.wrapper_struct()
        return f"{wrapper}({obj})" if wrapper else obj

    def self_access(self, obj: str) -> str:
        return f"{obj}.0" if self.wrapper_struct() else obj

    def static_checks(self) -> Optional[str]:
        # mirrored enums must stay in sync with the foreign declaration
        if not self.wrapper_struct():
            return None
        enu = self.enum
        arms = [f"        {enu.name}::{v.name} => {{}}" for v in enu.variants]
        return "\n".join([
            "{",
            f"    match None::<{enu.name}>.unwrap() {{",
            *arms,
            "    }",
            "}",
        ])


def generator_for(ty: IrType, context: GeneratorContext) -> TypeGenerator:
    """Pick the generator for an IR type; unknown types get the no-op default"""
    from .delegate_generator import TypeDelegateGenerator

    if isinstance(ty, IrTypeDelegate):
        return TypeDelegateGenerator(ty, context)
    if isinstance(ty, IrTypePrimitive):
        return PrimitiveGenerator(ty, context)
    if isinstance(ty, IrTypePrimitiveList):
        return PrimitiveListGenerator(ty, context)
    if isinstance(ty, IrTypeGeneralList):
        return GeneralListGenerator(ty, context)
    if isinstance(ty, IrTypeStructRef):
        return StructRefGenerator(ty, context)
    if isinstance(ty, IrTypeEnumRef):
        return EnumRefGenerator(ty, context)
    return TypeGenerator(ty, context)
