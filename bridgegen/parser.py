"""Loader for serialized IR documents"""

import yaml

from .errors import IRError
from .type_mapper import TypeMapper
from .types import IrEnum, IrField, IrFile, IrFunc, IrStruct, IrTypePrimitive, IrVariant


class IRParser:
    """Parses a YAML IR document into an IrFile.

    Expected shape::

        enums:
          - {name: Weekday, variants: [Monday, Tuesday], repr: i32}
        structs:
          - name: Point
            fields: [{name: x, type: f64}, {name: y, type: f64}]
        funcs:
          - name: add
            inputs: [{name: a, type: i32}, {name: b, type: i32}]
            output: i32
    """

    def __init__(self, content: str):
        try:
            self.data = yaml.safe_load(content) or {}
        except yaml.YAMLError as exc:
            raise IRError(f"Invalid IR document: {exc}") from exc
        if not isinstance(self.data, dict):
            raise IRError("IR document must be a mapping")

    def parse(self) -> IrFile:
        result = IrFile()
        enum_reprs = {}
        for entry in self._section('enums'):
            enum, repr_ = self._parse_enum(entry)
            result.enum_pool[enum.name] = enum
            enum_reprs[enum.name] = repr_

        struct_entries = self._section('structs')
        struct_names = {self._require(s, 'name', 'struct') for s in struct_entries}
        mapper = TypeMapper(struct_names, result.enum_pool, enum_reprs)

        for entry in struct_entries:
            struct = IrStruct(name=entry['name'], fields=self._parse_fields(entry.get('fields'), mapper))
            result.struct_pool[struct.name] = struct

        for entry in self._section('funcs'):
            name = self._require(entry, 'name', 'function')
            output = entry.get('output')
            result.funcs.append(IrFunc(
                name=name,
                inputs=self._parse_fields(entry.get('inputs'), mapper),
                output=mapper.parse(str(output)) if output else IrTypePrimitive.UNIT,
            ))
        return result

    def _section(self, key: str) -> list[dict]:
        entries = self.data.get(key) or []
        if not isinstance(entries, list) or not all(isinstance(e, dict) for e in entries):
            raise IRError(f"'{key}' must be a list of mappings")
        return entries

    def _require(self, entry: dict, key: str, what: str) -> str:
        value = entry.get(key)
        if not value:
            raise IRError(f"{what} entry is missing '{key}': {entry}")
        return str(value)

    def _parse_enum(self, entry: dict) -> tuple[IrEnum, IrTypePrimitive]:
        name = self._require(entry, 'name', 'enum')
        variants = entry.get('variants') or []
        if not variants:
            raise IRError(f"enum {name} has no variants")
        repr_name = str(entry.get('repr', 'i32'))
        repr_ = TypeMapper.primitive(repr_name)
        if repr_ is None or repr_ in (IrTypePrimitive.BOOL, IrTypePrimitive.UNIT,
                                      IrTypePrimitive.F32, IrTypePrimitive.F64):
            raise IRError(f"enum {name} has non-integer repr {repr_name}")
        enum = IrEnum(
            name=name,
            variants=[IrVariant(str(v)) for v in variants],
            wrapper_name=entry.get('wrapper_name'),
            path=entry.get('path'),
        )
        return enum, repr_

    def _parse_fields(self, entries, mapper: TypeMapper) -> list[IrField]:
        entries = entries or []
        if not isinstance(entries, list) or not all(isinstance(e, dict) for e in entries):
            raise IRError(f"fields must be a list of mappings, got {entries!r}")
        fields = []
        for entry in entries:
            name = self._require(entry, 'name', 'field')
            fields.append(IrField(name=name, ty=mapper.parse(self._require(entry, 'type', 'field'))))
        return fields
