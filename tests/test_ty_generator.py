from bridgegen.delegate_generator import TypeDelegateGenerator
from bridgegen.target import Acc, Target
from bridgegen.ty_generator import (
    EnumRefGenerator,
    ExternFuncCollector,
    GeneralListGenerator,
    PrimitiveGenerator,
    PrimitiveListGenerator,
    StructRefGenerator,
    TypeGenerator,
    generator_for,
)
from bridgegen.types import (
    IrDelegateString,
    IrTypeEnumRef,
    IrTypeGeneralList,
    IrTypePrimitive,
    IrTypePrimitiveList,
    IrTypeStructRef,
)


def test_dispatch(context):
    assert type(generator_for(IrTypePrimitive.I32, context)) is PrimitiveGenerator
    assert type(generator_for(IrTypePrimitiveList(IrTypePrimitive.U8), context)) is PrimitiveListGenerator
    assert type(generator_for(IrTypeGeneralList(IrTypeStructRef('Point')), context)) is GeneralListGenerator
    assert type(generator_for(IrTypeStructRef('Point'), context)) is StructRefGenerator
    assert type(generator_for(IrTypeEnumRef('Weekday'), context)) is EnumRefGenerator
    assert type(generator_for(IrDelegateString(), context)) is TypeDelegateGenerator


def test_base_generator_is_noop(context):
    generator = TypeGenerator(IrTypePrimitive.I32, context)
    assert generator.wire2api_body() == Acc()
    assert generator.wire_struct_fields() is None
    assert generator.allocate_funcs(ExternFuncCollector("P_"), 0) == Acc()
    assert generator.impl_intodart() == ""
    assert generator.wire2api_jsvalue() is None
    assert generator.wrap_obj("x") == "x"
    assert generator.self_access("x") == "x"
    assert generator.static_checks() is None


def test_collector_prefixes_and_records_io_names():
    collector = ExternFuncCollector("P1_")
    io = collector.generate("wire_f", ["port_: i64"], None, "body()", Target.IO)
    wasm = collector.generate("wire_f", ["port_: MessagePort"], None, "body()", Target.WASM)
    assert io.startswith('#[no_mangle]\npub extern "C" fn P1_wire_f(port_: i64) {')
    assert wasm.startswith('#[wasm_bindgen]\npub fn P1_wire_f(port_: MessagePort) {')
    assert collector.names == ["P1_wire_f"]


def test_primitive(context):
    generator = generator_for(IrTypePrimitive.I32, context)
    body = generator.wire2api_body()
    assert body.common == "self"
    assert body.io is None and body.wasm is None
    assert generator.wire2api_jsvalue() == "self.unchecked_into_f64() as _"
    assert generator_for(IrTypePrimitive.BOOL, context).wire2api_jsvalue() == "self.is_truthy()"
    assert "BigInt" in generator_for(IrTypePrimitive.I64, context).wire2api_jsvalue()
    assert generator_for(IrTypePrimitive.UNIT, context).wire2api_body() == Acc()


def test_primitive_list(context):
    ty = IrTypePrimitiveList(IrTypePrimitive.U8)
    generator = generator_for(ty, context)
    assert generator.wire_struct_fields() == [("ptr", "*mut u8"), ("len", "i32")]
    assert generator.wire2api_body().wasm == "self.into_vec()"
    collector = ExternFuncCollector("P7C55DD6B_")
    alloc = generator.allocate_funcs(collector, 2)
    assert alloc.wasm is None
    assert "pub extern \"C\" fn P7C55DD6B_new_uint_8_list_2(len: i32) -> *mut wire_uint_8_list {" in alloc.io
    assert collector.names == ["P7C55DD6B_new_uint_8_list_2"]
    assert "js_sys::Uint8Array" in generator.wire2api_jsvalue()


def test_general_list_allocates_null_elements(context):
    ty = IrTypeGeneralList(IrTypeStructRef('Point'))
    generator = generator_for(ty, context)
    assert generator.wire_struct_fields() == [("ptr", "*mut wire_Point"), ("len", "i32")]
    alloc = generator.allocate_funcs(ExternFuncCollector("P_"), 0).io
    assert "fn P_new_list_Point_0(len: i32) -> *mut wire_list_Point {" in alloc
    assert "<wire_Point>::new_with_null_ptr()" in alloc


def test_struct_ref(context):
    generator = generator_for(IrTypeStructRef('Point'), context)
    body = generator.wire2api_body()
    assert "x: self.x.wire2api()," in body.io
    assert "y: self_.get(1).wire2api()," in body.wasm
    assert 'assert_eq!(self_.length(), 2, "Expected 2 elements, got {}", self_.length());' in body.wasm
    assert generator.wire_struct_fields() == [("x", "f64"), ("y", "f64")]
    intodart = generator.impl_intodart()
    assert "impl support::IntoDart for Point {" in intodart
    assert "self.x.into_dart()," in intodart
    assert "impl support::IntoDartExceptPrimitive for Point {}" in intodart
    assert "x: Default::default()," in generator.new_with_null_ptr()


def test_enum_ref_without_wrapper(context):
    generator = generator_for(IrTypeEnumRef('Weekday'), context)
    assert generator.imports() is None
    assert generator.wrapper_struct() is None
    assert generator.wrap_obj("v") == "v"
    assert generator.static_checks() is None
