"""Type mapping from Rust type names in the IR document to IR types"""

import re
from typing import Optional

from .errors import IRError
from .types import (
    IrDelegatePrimitiveEnum,
    IrDelegateString,
    IrDelegateStringList,
    IrDelegateTime,
    IrDelegateZeroCopyBuffer,
    IrEnum,
    IrType,
    IrTypeEnumRef,
    IrTypeGeneralList,
    IrTypePrimitive,
    IrTypePrimitiveList,
    IrTypeStructRef,
    TimeKind,
)


class TypeMapper:
    """Maps Rust type names to IR types"""

    PRIMITIVES = {p.rust_api_type(): p for p in IrTypePrimitive}

    TIME_TYPES = {
        'NaiveDateTime': TimeKind.NAIVE,
        'DateTime<Utc>': TimeKind.UTC,
        'DateTime<Local>': TimeKind.LOCAL,
        'Duration': TimeKind.DURATION,
    }

    def __init__(self, struct_names: set[str], enums: dict[str, IrEnum],
                 enum_reprs: Optional[dict[str, IrTypePrimitive]] = None):
        self.struct_names = struct_names
        self.enums = enums
        self.enum_reprs = enum_reprs or {}

    @classmethod
    def normalize(cls, rust_type: str) -> str:
        rust_type = re.sub(r'\s+', '', rust_type)
        rust_type = rust_type.replace('chrono::', '')
        return rust_type

    @classmethod
    def primitive(cls, rust_type: str) -> Optional[IrTypePrimitive]:
        return cls.PRIMITIVES.get(cls.normalize(rust_type))

    @classmethod
    def vector_inner(cls, rust_type: str) -> Optional[str]:
        if m := re.fullmatch(r'Vec<(.+)>', rust_type):
            return m.group(1)
        return None

    def parse(self, rust_type: str) -> IrType:
        """Convert a Rust type name to its IR type"""
        ty = self.normalize(rust_type)

        if ty in self.PRIMITIVES:
            return self.PRIMITIVES[ty]
        if ty == 'String':
            return IrDelegateString()
        if ty in self.TIME_TYPES:
            return IrDelegateTime(self.TIME_TYPES[ty])

        if m := re.fullmatch(r'ZeroCopyBuffer<Vec<(\w+)>>', ty):
            inner = self.PRIMITIVES.get(m.group(1))
            if inner is None or inner.js_typed_array is None:
                raise IRError(f"ZeroCopyBuffer only supports numeric vectors, got {rust_type}")
            return IrDelegateZeroCopyBuffer(inner)

        if (inner_name := self.vector_inner(ty)) is not None:
            if inner_name == 'String':
                return IrDelegateStringList()
            inner = self.PRIMITIVES.get(inner_name)
            if inner is not None and inner.js_typed_array is not None:
                return IrTypePrimitiveList(inner)
            return IrTypeGeneralList(self.parse(inner_name))

        if ty in self.enums:
            repr_ = self.enum_reprs.get(ty, IrTypePrimitive.I32)
            return IrDelegatePrimitiveEnum(IrTypeEnumRef(ty), repr_)
        if ty in self.struct_names:
            return IrTypeStructRef(ty)

        raise IRError(f"Unknown type: {rust_type}")
