"""Ordering of packed index keys."""

from __future__ import annotations

import struct
from collections.abc import Sequence

from rmdb.common import CompOp, Value, value_comp
from rmdb.defs import ColType
from rmdb.errors import InternalError


def _sign(a, b) -> int:
    return (a > b) - (a < b)


def compare_column(a: bytes, b: bytes, col_type: ColType, length: int) -> int:
    """Compare one packed column of two keys; return -1, 0 or 1."""
    if col_type == ColType.INT:
        return _sign(struct.unpack_from("<i", a)[0], struct.unpack_from("<i", b)[0])
    if col_type == ColType.FLOAT:
        return _sign(struct.unpack_from("<f", a)[0], struct.unpack_from("<f", b)[0])
    if col_type == ColType.STRING:
        return _sign(bytes(a[:length]), bytes(b[:length]))
    raise InternalError("Unexpected data type")


def ix_compare(
    a: bytes, b: bytes, col_types: Sequence[ColType], col_lens: Sequence[int]
) -> int:
    """Compare two packed multi-column keys column by column."""
    view_a, view_b = memoryview(a), memoryview(b)
    offset = 0
    for col_type, length in zip(col_types, col_lens):
        res = compare_column(
            view_a[offset:offset + length], view_b[offset:offset + length], col_type, length
        )
        if res:
            return res
        offset += length
    return 0


def _decode_column(data: memoryview, col_type: ColType, length: int) -> Value:
    if col_type == ColType.INT:
        return Value(type=ColType.INT, int_val=struct.unpack_from("<i", data)[0])
    if col_type == ColType.FLOAT:
        return Value(type=ColType.FLOAT, float_val=struct.unpack_from("<f", data)[0])
    if col_type == ColType.STRING:
        raw = bytes(data[:length]).split(b"\0", 1)[0]
        return Value(type=ColType.STRING, str_val=raw.decode("utf-8", "surrogateescape"))
    return Value(type=col_type)


def ix_compare_values(
    a: bytes,
    values: Sequence[Value],
    col_types: Sequence[ColType],
    col_lens: Sequence[int],
) -> int:
    """Compare a packed key with a sequence of values, one per column."""
    view = memoryview(a)
    offset = 0
    for col_type, length, value in zip(col_types, col_lens, values, strict=True):
        key_val = _decode_column(view[offset:offset + length], col_type, length)
        if value_comp(key_val, value, CompOp.LT):
            return -1
        if value_comp(key_val, value, CompOp.GT):
            return 1
        offset += length
    return 0