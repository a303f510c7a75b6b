"""Values, columns, conditions and comparison rules shared by the engine."""

from __future__ import annotations

import enum
import math
import operator
import struct
from dataclasses import dataclass, field
from typing import Callable, Optional

from rmdb.defs import ColType
from rmdb.errors import IncompatibleTypeError, InternalError, StringOverflowError

INT32_MAX = 2**31 - 1
INT32_MIN = -(2**31)
FLT_MAX = struct.unpack("<f", bytes.fromhex("ffff7f7f"))[0]
FLT_MIN = struct.unpack("<f", bytes.fromhex("00008000"))[0]

_INT_SIZE = 4
_FLOAT_SIZE = 4
_MAX_PRINTABLE = "~"


def _f32(x: float) -> float:
    """Round a number to single precision."""
    try:
        return struct.unpack("<f", struct.pack("<f", x))[0]
    except OverflowError:
        return math.copysign(math.inf, x)


@dataclass(frozen=True, order=True)
class TabCol:
    """A column qualified by its table."""

    tab_name: str
    col_name: str


class AggrType(enum.IntEnum):
    SUM = 0
    MAX = 1
    MIN = 2
    COUNT = 3
    COUNT_STAR = 4
    NON_AGG = 5


@dataclass
class AggrCol:
    tab_col: TabCol
    type: AggrType
    alias: str = ""


class CompOp(enum.IntEnum):
    EQ = 0
    NE = 1
    LT = 2
    GT = 3
    LE = 4
    GE = 5


_OPS: dict[CompOp, Callable[[object, object], bool]] = {
    CompOp.EQ: operator.eq,
    CompOp.NE: operator.ne,
    CompOp.LT: operator.lt,
    CompOp.GT: operator.gt,
    CompOp.LE: operator.le,
    CompOp.GE: operator.ge,
}


@dataclass
class Value:
    """A typed scalar, optionally with its raw on-disk bytes."""

    type: Optional[ColType] = None
    int_val: int = 0
    float_val: float = 0.0
    str_val: str = ""
    raw: Optional[bytes] = None

    def init_raw(self, length: int) -> None:
        """Build the raw bytes of the value for a column of the given length."""
        if self.raw is not None:
            raise InternalError("raw buffer already initialized")
        if self.type == ColType.INT:
            if length != _INT_SIZE:
                raise InternalError(f"INT column needs {_INT_SIZE} bytes, got {length}")
            self.raw = struct.pack("<i", self.int_val)
        elif self.type == ColType.FLOAT:
            if length != _FLOAT_SIZE:
                raise InternalError(f"FLOAT column needs {_FLOAT_SIZE} bytes, got {length}")
            self.raw = struct.pack("<f", self.float_val)
        elif self.type == ColType.STRING:
            encoded = self.str_val.encode()
            if length < len(encoded):
                raise StringOverflowError()
            self.raw = encoded.ljust(length, b"\0")
        else:
            self.raw = bytes(length)

    def generate_max(self, col_type: ColType, length: int) -> None:
        """Turn this value into the largest value of a column."""
        self.type = col_type
        if col_type == ColType.INT:
            self.int_val = INT32_MAX
            self.raw = None
            self.init_raw(length)
        elif col_type == ColType.FLOAT:
            self.float_val = FLT_MAX
            self.raw = None
            self.init_raw(length)
        elif col_type == ColType.STRING:
            self.str_val = (self.str_val + _MAX_PRINTABLE * length)[:length]
            self.raw = _MAX_PRINTABLE.encode() * length

    def generate_min(self, col_type: ColType, length: int) -> None:
        """Turn this value into the smallest value of a column."""
        self.type = col_type
        if col_type == ColType.INT:
            self.int_val = INT32_MIN
            self.raw = None
            self.init_raw(length)
        elif col_type == ColType.FLOAT:
            self.float_val = FLT_MIN
            self.raw = None
            self.init_raw(length)
        elif col_type == ColType.STRING:
            self.str_val = ""
            self.raw = bytes(length)


def value_comp(left: Value, right: Value, op: CompOp) -> bool:
    """Compare two values with an operator, widening INT to FLOAT when mixed."""
    compare = _OPS[CompOp(op)]
    lt, rt = left.type, right.type
    if lt == ColType.INT and rt == ColType.INT:
        return compare(left.int_val, right.int_val)
    if lt == ColType.FLOAT and rt == ColType.FLOAT:
        return compare(_f32(left.float_val), _f32(right.float_val))
    if lt == ColType.STRING and rt == ColType.STRING:
        return compare(left.str_val, right.str_val)
    if lt == ColType.FLOAT and rt == ColType.INT:
        return compare(_f32(left.float_val), _f32(right.int_val))
    if lt == ColType.INT and rt == ColType.FLOAT:
        return compare(_f32(left.int_val), _f32(right.float_val))
    raise IncompatibleTypeError("", "")


def type_compatible(left: ColType, right: ColType) -> bool:
    """Return True if values of the two column types can be compared."""
    if left == right:
        return True
    return {left, right} == {ColType.INT, ColType.FLOAT}


@dataclass
class Condition:
    lhs_col: TabCol
    op: CompOp
    is_rhs_val: bool = False
    rhs_col: TabCol = field(default_factory=lambda: TabCol("", ""))
    rhs_val: Value = field(default_factory=Value)


@dataclass
class HavingCond:
    lhs_col: AggrCol
    op: CompOp
    rhs_val: Value


@dataclass
class SetClause:
    lhs: TabCol
    rhs: Value


@dataclass
class SubQueryClause:
    lhs: TabCol
    op: CompOp
    in_clause: bool