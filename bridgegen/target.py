"""Execution targets and the per-target code accumulator"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Generic, Iterable, Optional, TypeVar

T = TypeVar('T')
U = TypeVar('U')


class Target(Enum):
    """Where a fragment of generated code ends up"""
    COMMON = 'common'
    IO = 'io'
    WASM = 'wasm'


def _concat(left, right):
    if left is None:
        return right
    if right is None:
        return left
    return left + right


@dataclass
class Acc(Generic[T]):
    """One optional fragment per target plus an optional shared fragment.

    A slot left as None means "no output for that target".
    """
    common: Optional[T] = None
    io: Optional[T] = None
    wasm: Optional[T] = None

    @classmethod
    def distribute(cls, value: T) -> 'Acc[T]':
        """Same fragment for both execution targets"""
        return cls(io=value, wasm=value)

    def __getitem__(self, target: Target) -> Optional[T]:
        return getattr(self, target.value)

    def __setitem__(self, target: Target, value: Optional[T]):
        setattr(self, target.value, value)

    def map(self, func: Callable[[T, Target], U]) -> 'Acc[U]':
        result: Acc[U] = Acc()
        for target in Target:
            value = self[target]
            if value is not None:
                result[target] = func(value, target)
        return result

    def merge(self, other: 'Acc[T]') -> 'Acc[T]':
        result: Acc[T] = Acc()
        for target in Target:
            result[target] = _concat(self[target], other[target])
        return result

    __add__ = merge

    @staticmethod
    def join(accs: Iterable['Acc[Optional[str]]'], sep: str = "\n") -> 'Acc[str]':
        """Join string fragments slot by slot, skipping missing ones"""
        parts: dict[Target, list[str]] = {target: [] for target in Target}
        for acc in accs:
            for target in Target:
                if acc[target] is not None:
                    parts[target].append(acc[target])
        result: Acc[str] = Acc()
        for target, values in parts.items():
            if values:
                result[target] = sep.join(values)
        return result
