"""Code generation for delegate types: IR types that travel as a simpler wire type"""

from typing import Optional

from .target import Acc, Target
from .ty_generator import (
    EnumRefGenerator,
    ExternFuncCollector,
    GeneralListGenerator,
    TypeGenerator,
    generate_list_allocate_func,
    indent,
)
from .types import (
    IrDelegatePrimitiveEnum,
    IrDelegateString,
    IrDelegateStringList,
    IrDelegateTime,
    IrDelegateZeroCopyBuffer,
    TimeKind,
)

# wire granularity of the time family: microseconds on io, milliseconds on wasm
TIME_UNITS_PER_SECOND = {Target.IO: 1_000_000, Target.WASM: 1_000}
NANOS_PER_SECOND = 1_000_000_000

_DURATION_CONSTRUCTORS = {Target.IO: 'microseconds', Target.WASM: 'milliseconds'}

_NAIVE = 'chrono::NaiveDateTime::from_timestamp_opt(s, ns).expect("invalid or out-of-range datetime")'
_UTC = f'chrono::DateTime::<chrono::Utc>::from_naive_utc_and_offset({_NAIVE}, chrono::Utc)'
_LOCAL = f'chrono::DateTime::<chrono::Local>::from({_UTC})'

_TIME_CONVERSIONS = {
    TimeKind.NAIVE: _NAIVE,
    TimeKind.UTC: _UTC,
    TimeKind.LOCAL: _LOCAL,
}


def time_split_code(target: Target) -> str:
    """Split the wire integer into whole seconds `s` and nanoseconds `ns`.

    Euclidean division keeps `ns` non-negative for instants before the epoch.
    """
    units = TIME_UNITS_PER_SECOND[target]
    nanos_per_unit = NANOS_PER_SECOND // units
    return "\n".join([
        f"let s = self.div_euclid({units:_}) as i64;",
        f"let ns = (self.rem_euclid({units:_}) * {nanos_per_unit:_}) as u32;",
    ])


class TypeDelegateGenerator(TypeGenerator):

    def _enum_generator(self) -> Optional[EnumRefGenerator]:
        if isinstance(self.ty, IrDelegatePrimitiveEnum):
            return EnumRefGenerator(self.ty.ir, self.context)
        return None

    def _delegate_enum(self, op: str, default, *args):
        """Forward a structural hook to the enum generator for enum delegates"""
        enum_generator = self._enum_generator()
        if enum_generator is None:
            return default
        return getattr(enum_generator, op)(*args)

    def wire2api_body(self) -> Acc[Optional[str]]:
        ty = self.ty
        if isinstance(ty, IrDelegateString):
            return Acc(
                io="let vec: Vec<u8> = self.wire2api();\nString::from_utf8_lossy(&vec).into_owned()",
                wasm="self",
            )
        if isinstance(ty, IrDelegateZeroCopyBuffer):
            return Acc.distribute("ZeroCopyBuffer(self.wire2api())")
        if isinstance(ty, IrDelegateStringList):
            return Acc(
                io=GeneralListGenerator.WIRE2API_BODY_IO,
                wasm=GeneralListGenerator.WIRE2API_BODY_WASM,
            )
        if isinstance(ty, IrDelegatePrimitiveEnum):
            enu = ty.ir.get(self.context.ir_file)
            arms = [f"{idx} => {enu.name}::{variant.name}," for idx, variant in enumerate(enu.variants)]
            arms.append(f'_ => unreachable!("Invalid variant for {enu.name}: {{}}", self),')
            return Acc.distribute("\n".join(["match self {", indent("\n".join(arms)), "}"]))
        if isinstance(ty, IrDelegateTime):
            return Acc(io=self._time_body(Target.IO), wasm=self._time_body(Target.WASM))
        return Acc()

    def _time_body(self, target: Target) -> str:
        if self.ty.kind is TimeKind.DURATION:
            return f"chrono::Duration::{_DURATION_CONSTRUCTORS[target]}(self)"
        return "\n".join([time_split_code(target), _TIME_CONVERSIONS[self.ty.kind]])

    def wire_struct_fields(self) -> Optional[list[tuple[str, str]]]:
        if isinstance(self.ty, IrDelegateStringList):
            return [
                ("ptr", f"*mut {self.ty.get_delegate().rust_wire_param_type(Target.IO)}"),
                ("len", "i32"),
            ]
        return None

    def allocate_funcs(self, collector: ExternFuncCollector, block_index: int) -> Acc[Optional[str]]:
        if isinstance(self.ty, IrDelegateStringList):
            return Acc(io=generate_list_allocate_func(
                collector, self.ty.safe_ident(), self.ty, self.ty.get_delegate(), block_index))
        return Acc()

    def impl_intodart(self) -> str:
        if not isinstance(self.ty, IrDelegatePrimitiveEnum):
            return ""
        src = self.ty.ir.get(self.context.ir_file)
        if src.wrapper_name:
            name, self_path = src.wrapper_name, src.name
        else:
            name, self_path = src.name, "Self"
        arms = [f"            {self_path}::{v.name} => {idx}," for idx, v in enumerate(src.variants)]
        lines = [
            f"impl support::IntoDart for {name} {{",
            "    fn into_dart(self) -> support::DartAbi {",
            f"        match {self.self_access('self')} {{",
            *arms,
            "        }",
            "        .into_dart()",
            "    }",
            "}",
            f"impl support::IntoDartExceptPrimitive for {name} {{}}",
        ]
        return "\n".join(lines)

    def wire2api_jsvalue(self) -> Optional[str]:
        ty = self.ty
        if isinstance(ty, IrDelegateString):
            return 'self.as_string().expect("non-UTF-8 string, or not a string")'
        if isinstance(ty, IrDelegatePrimitiveEnum):
            return f"(self.unchecked_into_f64() as {ty.repr.rust_wire_type(Target.WASM)}).wire2api()"
        if isinstance(ty, IrDelegateZeroCopyBuffer):
            return "ZeroCopyBuffer(self.wire2api())"
        return None

    def imports(self) -> Optional[str]:
        return self._delegate_enum('imports', None)

    def wrapper_struct(self) -> Optional[str]:
        return self._delegate_enum('wrapper_struct', None)

    def wrap_obj(self, obj: str) -> str:
        return self._delegate_enum('wrap_obj', obj, obj)

    def self_access(self, obj: str) -> str:
        return self._delegate_enum('self_access', obj, obj)

    def static_checks(self) -> Optional[str]:
        return self._delegate_enum('static_checks', None)
