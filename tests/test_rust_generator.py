from bridgegen.parser import IRParser
from bridgegen.rust_generator import RustGenerator
from conftest import make_opts

ADD_IR = """
funcs:
  - name: add
    inputs:
      - {name: a, type: i32}
      - {name: b, type: i32}
    output: i32
"""


def test_add_end_to_end(opts):
    generator = RustGenerator(IRParser(ADD_IR).parse(), opts)
    code = generator.generate()

    assert 'pub extern "C" fn P7C55DD6B_wire_add(port_: i64, a: i32, b: i32) {' in code.io
    assert "#[no_mangle]" in code.io
    assert "P7C55DD6B_wire_add_impl(port_, a, b)" in code.io

    assert "pub fn P7C55DD6B_wire_add(port_: MessagePort, a: i32, b: i32) {" in code.wasm
    assert "#[wasm_bindgen]" in code.wasm

    common = code.common
    assert ("fn P7C55DD6B_wire_add_impl(port_: MessagePort, a: impl Wire2Api<i32> + UnwindSafe, "
            "b: impl Wire2Api<i32> + UnwindSafe) {") in common
    assert 'debug_name: "add",' in common
    assert "let api_a = a.wire2api();" in common
    assert "move |task_callback| Ok(add(api_a, api_b))" in common
    assert "impl Wire2Api<i32> for i32 {" in common
    assert "use flutter_rust_bridge::*;" in common
    assert generator.extern_func_names == ["P7C55DD6B_wire_add"]
    assert generator.wire_struct_names == []


def test_sections_in_order(opts):
    code = RustGenerator(IRParser(ADD_IR).parse(), opts).generate()
    io_sections = [line for line in code.io.splitlines() if line.startswith("// Section: ")]
    assert io_sections == [
        "// Section: wire functions",
        "// Section: allocate functions",
        "// Section: related functions",
        "// Section: impl Wire2Api",
        "// Section: wire structs",
        "// Section: impl NewWithNullPtr",
    ]
    assert "// Section: impl Wire2Api for JsValue" in code.wasm


def test_target_module_declarations(opts):
    common = RustGenerator(IRParser(ADD_IR).parse(), opts).generate().common
    assert '#[path = "bridge_generated_api.io.rs"]' in common
    assert '#[path = "bridge_generated_api.web.rs"]' in common


def test_wasm_disabled(tmp_path):
    config = make_opts(tmp_path, wasm_enabled=False)
    code = RustGenerator(IRParser(ADD_IR).parse(), config).generate()
    assert code.wasm is None
    assert "mod web;" not in code.common


def test_sample_module(sample_ir, opts):
    generator = RustGenerator(sample_ir, opts)
    code = generator.generate()

    assert generator.extern_func_names == [
        "P7C55DD6B_wire_add",
        "P7C55DD6B_wire_greet",
        "P7C55DD6B_wire_next_day",
        "P7C55DD6B_wire_shift",
        "P7C55DD6B_wire_centroid",
        "P7C55DD6B_new_StringList_0",
        "P7C55DD6B_new_uint_8_list_0",
        "P7C55DD6B_new_list_Point_0",
    ]
    assert generator.wire_struct_names == ["wire_StringList", "wire_uint_8_list", "wire_list_Point", "wire_Point"]

    io = code.io
    assert "pub extern \"C\" fn P7C55DD6B_wire_greet(port_: i64, names: *mut wire_StringList) {" in io
    assert "pub struct wire_StringList {\n    ptr: *mut *mut wire_uint_8_list,\n    len: i32,\n}" in io
    assert "impl Wire2Api<chrono::NaiveDateTime> for i64 {" in io
    assert "impl Wire2Api<Weekday> for i32 {" in io
    assert "impl NewWithNullPtr for wire_Point {" in io

    wasm = code.wasm
    assert "pub fn P7C55DD6B_wire_shift(port_: MessagePort, at: i64, by: i64) {" in wasm
    assert "impl Wire2Api<String> for JsValue {" in wasm
    assert "impl Wire2Api<Point> for JsValue {" in wasm
    assert "impl Wire2Api<chrono::Duration> for JsValue {" in wasm
    assert "(self.unchecked_into_f64() as i64).wire2api()" in wasm

    assert "impl support::IntoDart for Weekday {" in code.common
    assert "impl support::IntoDart for Point {" in code.common


def test_block_index_in_allocators(sample_ir, tmp_path):
    config = make_opts(tmp_path, block_index=3)
    generator = RustGenerator(sample_ir, config)
    generator.generate()
    assert "P7C55DD6B_new_uint_8_list_3" in generator.extern_func_names


def test_enum_list_allocator_zeroes_elements(opts):
    ir_file = IRParser("""
enums:
  - name: Weekday
    variants: [Monday, Tuesday]
funcs:
  - name: g
    inputs:
      - {name: days, type: Vec<Weekday>}
""").parse()
    generator = RustGenerator(ir_file, opts)
    io = generator.generate().io
    assert "P7C55DD6B_new_list_Weekday_0" in generator.extern_func_names
    assert "ptr: support::new_leak_vec_ptr(Default::default(), len)," in io
    assert "<i32>::new_with_null_ptr()" not in io


def test_string_list_only_module(opts):
    ir_file = IRParser("""
funcs:
  - name: f
    inputs:
      - {name: names, type: Vec<String>}
""").parse()
    generator = RustGenerator(ir_file, opts)
    io = generator.generate().io
    assert 'pub extern "C" fn P7C55DD6B_new_StringList_0(len: i32) -> *mut wire_StringList {' in io
    assert "P7C55DD6B_new_StringList_0" in generator.extern_func_names
    assert "<*mut wire_uint_8_list>::new_with_null_ptr()" in io
