"""IR data types describing the exported API and the types crossing the boundary"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Union

from .target import Target


class IrTypePrimitive(Enum):
    """Types whose wire form equals their API form on every target"""
    U8 = 'u8'
    I8 = 'i8'
    U16 = 'u16'
    I16 = 'i16'
    U32 = 'u32'
    I32 = 'i32'
    U64 = 'u64'
    I64 = 'i64'
    USIZE = 'usize'
    F32 = 'f32'
    F64 = 'f64'
    BOOL = 'bool'
    UNIT = 'unit'

    def safe_ident(self) -> str:
        return self.value

    def rust_api_type(self) -> str:
        return '()' if self is IrTypePrimitive.UNIT else self.value

    def rust_wire_type(self, target: Target) -> str:
        return self.rust_api_type()

    def rust_wire_is_pointer(self, target: Target) -> bool:
        return False

    def rust_wire_param_type(self, target: Target) -> str:
        return self.rust_wire_type(target)

    @property
    def list_ident(self) -> str:
        """Identifier fragment used for `Vec<T>` wire structs, e.g. `uint_8`"""
        return _LIST_IDENTS.get(self, self.value)

    @property
    def js_typed_array(self) -> Optional[str]:
        return _JS_TYPED_ARRAYS.get(self)

    def js_value_cast(self) -> str:
        """Expression converting a `JsValue` named `self` into this primitive"""
        if self is IrTypePrimitive.BOOL:
            return "self.is_truthy()"
        if self in (IrTypePrimitive.I64, IrTypePrimitive.U64):
            return (
                f"::std::convert::TryInto::<{self.value}>::try_into("
                "self.dyn_into::<js_sys::BigInt>().unwrap()).unwrap()"
            )
        return "self.unchecked_into_f64() as _"


_LIST_IDENTS = {
    IrTypePrimitive.U8: 'uint_8',
    IrTypePrimitive.I8: 'int_8',
    IrTypePrimitive.U16: 'uint_16',
    IrTypePrimitive.I16: 'int_16',
    IrTypePrimitive.U32: 'uint_32',
    IrTypePrimitive.I32: 'int_32',
    IrTypePrimitive.U64: 'uint_64',
    IrTypePrimitive.I64: 'int_64',
    IrTypePrimitive.F32: 'float_32',
    IrTypePrimitive.F64: 'float_64',
}

_JS_TYPED_ARRAYS = {
    IrTypePrimitive.U8: 'Uint8Array',
    IrTypePrimitive.I8: 'Int8Array',
    IrTypePrimitive.U16: 'Uint16Array',
    IrTypePrimitive.I16: 'Int16Array',
    IrTypePrimitive.U32: 'Uint32Array',
    IrTypePrimitive.I32: 'Int32Array',
    IrTypePrimitive.U64: 'BigUint64Array',
    IrTypePrimitive.I64: 'BigInt64Array',
    IrTypePrimitive.F32: 'Float32Array',
    IrTypePrimitive.F64: 'Float64Array',
}

PRIMITIVE_WIRE_TYPES = {p.rust_api_type() for p in IrTypePrimitive}


class _IrTypeBase:
    """Shared helpers for the non-primitive IR types"""

    def rust_wire_is_pointer(self, target: Target) -> bool:
        return False

    def rust_wire_param_type(self, target: Target) -> str:
        wire = self.rust_wire_type(target)
        return f"*mut {wire}" if self.rust_wire_is_pointer(target) else wire


@dataclass(frozen=True)
class IrTypePrimitiveList(_IrTypeBase):
    """`Vec<T>` of a primitive with a JS typed-array counterpart"""
    primitive: IrTypePrimitive

    def safe_ident(self) -> str:
        return f"{self.primitive.list_ident}_list"

    def rust_api_type(self) -> str:
        return f"Vec<{self.primitive.rust_api_type()}>"

    def rust_wire_type(self, target: Target) -> str:
        if target is Target.WASM:
            return f"Box<[{self.primitive.rust_api_type()}]>"
        return f"wire_{self.safe_ident()}"

    def rust_wire_is_pointer(self, target: Target) -> bool:
        return target is not Target.WASM


@dataclass(frozen=True)
class IrTypeGeneralList(_IrTypeBase):
    """`Vec<T>` of any other type"""
    inner: 'IrType'

    def safe_ident(self) -> str:
        return f"list_{self.inner.safe_ident()}"

    def rust_api_type(self) -> str:
        return f"Vec<{self.inner.rust_api_type()}>"

    def rust_wire_type(self, target: Target) -> str:
        if target is Target.WASM:
            return 'JsValue'
        return f"wire_{self.safe_ident()}"

    def rust_wire_is_pointer(self, target: Target) -> bool:
        return target is not Target.WASM


@dataclass(frozen=True)
class IrTypeStructRef(_IrTypeBase):
    name: str

    def get(self, ir_file: 'IrFile') -> 'IrStruct':
        return ir_file.struct_pool[self.name]

    def safe_ident(self) -> str:
        return self.name

    def rust_api_type(self) -> str:
        return self.name

    def rust_wire_type(self, target: Target) -> str:
        if target is Target.WASM:
            return 'JsValue'
        return f"wire_{self.name}"


@dataclass(frozen=True)
class IrTypeEnumRef(_IrTypeBase):
    name: str

    def get(self, ir_file: 'IrFile') -> 'IrEnum':
        return ir_file.enum_pool[self.name]

    def safe_ident(self) -> str:
        return self.name

    def rust_api_type(self) -> str:
        return self.name

    def rust_wire_type(self, target: Target) -> str:
        if target is Target.WASM:
            return 'JsValue'
        return f"wire_{self.name}"


class IrTypeDelegate(_IrTypeBase):
    """An IR type whose wire form is a different, simpler type.

    `get_delegate()` returns the type the wire value decodes from; for
    `IrDelegateStringList` that is the element type.
    """

    def get_delegate(self) -> 'IrType':
        raise NotImplementedError

    def rust_wire_type(self, target: Target) -> str:
        return self.get_delegate().rust_wire_type(target)

    def rust_wire_is_pointer(self, target: Target) -> bool:
        return self.get_delegate().rust_wire_is_pointer(target)


@dataclass(frozen=True)
class IrDelegateString(IrTypeDelegate):

    def get_delegate(self) -> 'IrType':
        return IrTypePrimitiveList(IrTypePrimitive.U8)

    def safe_ident(self) -> str:
        return 'String'

    def rust_api_type(self) -> str:
        return 'String'

    def rust_wire_type(self, target: Target) -> str:
        if target is Target.WASM:
            return 'String'
        return super().rust_wire_type(target)


@dataclass(frozen=True)
class IrDelegateZeroCopyBuffer(IrTypeDelegate):
    """`ZeroCopyBuffer<Vec<T>>`: the decoded allocation is handed over as-is"""
    primitive: IrTypePrimitive

    def get_delegate(self) -> 'IrType':
        return IrTypePrimitiveList(self.primitive)

    def safe_ident(self) -> str:
        return f"ZeroCopyBuffer_{self.get_delegate().safe_ident()}"

    def rust_api_type(self) -> str:
        return f"ZeroCopyBuffer<{self.get_delegate().rust_api_type()}>"


@dataclass(frozen=True)
class IrDelegateStringList(IrTypeDelegate):

    def get_delegate(self) -> 'IrType':
        return IrDelegateString()

    def safe_ident(self) -> str:
        return 'StringList'

    def rust_api_type(self) -> str:
        return 'Vec<String>'

    def rust_wire_type(self, target: Target) -> str:
        if target is Target.WASM:
            return 'JsValue'
        return f"wire_{self.safe_ident()}"

    def rust_wire_is_pointer(self, target: Target) -> bool:
        return target is not Target.WASM


@dataclass(frozen=True)
class IrDelegatePrimitiveEnum(IrTypeDelegate):
    """Fieldless enum travelling as its variant index"""
    ir: IrTypeEnumRef
    repr: IrTypePrimitive = IrTypePrimitive.I32

    def get_delegate(self) -> 'IrType':
        return self.repr

    def safe_ident(self) -> str:
        return self.ir.safe_ident()

    def rust_api_type(self) -> str:
        return self.ir.rust_api_type()


class TimeKind(Enum):
    NAIVE = 'Naive'
    UTC = 'Utc'
    LOCAL = 'Local'
    DURATION = 'Duration'


_TIME_API_TYPES = {
    TimeKind.NAIVE: 'chrono::NaiveDateTime',
    TimeKind.UTC: 'chrono::DateTime<chrono::Utc>',
    TimeKind.LOCAL: 'chrono::DateTime<chrono::Local>',
    TimeKind.DURATION: 'chrono::Duration',
}


@dataclass(frozen=True)
class IrDelegateTime(IrTypeDelegate):
    """chrono types travelling as an i64 count of sub-second units"""
    kind: TimeKind

    def get_delegate(self) -> 'IrType':
        return IrTypePrimitive.I64

    def safe_ident(self) -> str:
        return f"Chrono_{self.kind.value}"

    def rust_api_type(self) -> str:
        return _TIME_API_TYPES[self.kind]


IrType = Union[
    IrTypePrimitive,
    IrTypePrimitiveList,
    IrTypeGeneralList,
    IrTypeStructRef,
    IrTypeEnumRef,
    IrTypeDelegate,
]


def is_primitive_wire(ty: IrType, target: Target) -> bool:
    return ty.rust_wire_param_type(target) in PRIMITIVE_WIRE_TYPES


@dataclass
class IrField:
    name: str
    ty: IrType


@dataclass
class IrStruct:
    name: str
    fields: list[IrField] = field(default_factory=list)


@dataclass
class IrVariant:
    name: str


@dataclass
class IrEnum:
    """Enum declaration; `wrapper_name` is set for mirrored foreign enums"""
    name: str
    variants: list[IrVariant] = field(default_factory=list)
    wrapper_name: Optional[str] = None
    path: Optional[str] = None


@dataclass
class IrFunc:
    name: str
    inputs: list[IrField] = field(default_factory=list)
    output: IrType = IrTypePrimitive.UNIT


@dataclass
class IrFile:
    """Complete IR for one generated module"""
    funcs: list[IrFunc] = field(default_factory=list)
    struct_pool: dict[str, IrStruct] = field(default_factory=dict)
    enum_pool: dict[str, IrEnum] = field(default_factory=dict)

    def sub_types(self, ty: IrType) -> list[IrType]:
        if isinstance(ty, IrTypeDelegate):
            return [ty.get_delegate()]
        if isinstance(ty, IrTypeGeneralList):
            return [ty.inner]
        if isinstance(ty, IrTypeStructRef):
            return [f.ty for f in ty.get(self).fields]
        return []

    def _visit(self, ty: IrType, seen: dict[str, IrType]) -> None:
        ident = ty.safe_ident()
        if ident in seen:
            return
        seen[ident] = ty
        for sub in self.sub_types(ty):
            self._visit(sub, seen)

    def distinct_types(self, inputs: bool = True, outputs: bool = True) -> list[IrType]:
        """Every type reachable from the functions, deduplicated by safe_ident"""
        seen: dict[str, IrType] = {}
        for func in self.funcs:
            if inputs:
                for f in func.inputs:
                    self._visit(f.ty, seen)
            if outputs:
                self._visit(func.output, seen)
        return list(seen.values())
