"""On-disk layout of B+ tree index files: file header, page header and slot ids."""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from typing import ClassVar

from rmdb.defs import ColType
from rmdb.errors import InternalError

IX_NO_PAGE = -1
IX_FILE_HDR_PAGE = 0
IX_LEAF_HEADER_PAGE = 1
IX_INIT_ROOT_PAGE = 2
IX_INIT_NUM_PAGES = 3
IX_MAX_COL_LEN = 512

RID_FORMAT = "<ii"
RID_SIZE = struct.calcsize(RID_FORMAT)

_INT_SIZE = 4
_FIXED_INTS = 5


@dataclass
class IxFileHdr:
    """Metadata of an index file, stored on its first page."""

    first_free_page_no: int = IX_NO_PAGE
    num_pages: int = 0
    root_page: int = IX_NO_PAGE
    col_types: list[ColType] = field(default_factory=list)
    col_lens: list[int] = field(default_factory=list)
    col_tot_len: int = 0
    btree_order: int = 0
    keys_size: int = 0
    first_leaf: int = IX_NO_PAGE
    last_leaf: int = IX_NO_PAGE
    tot_len: int = 0

    @property
    def col_num(self) -> int:
        """Number of key columns."""
        return len(self.col_types)

    def update_tot_len(self) -> None:
        """Recompute the serialized length of the header."""
        self.tot_len = _INT_SIZE * 4 + _INT_SIZE * 6 + _INT_SIZE * self.col_num * 2

    def _fields(self) -> list[int]:
        return [
            self.tot_len,
            self.first_free_page_no,
            self.num_pages,
            self.root_page,
            self.col_num,
            *(int(t) for t in self.col_types),
            *self.col_lens,
            self.col_tot_len,
            self.btree_order,
            self.keys_size,
            self.first_leaf,
            self.last_leaf,
        ]

    def serialize(self) -> bytes:
        """Encode the header; its length must equal ``tot_len``."""
        if len(self.col_lens) != self.col_num:
            raise InternalError("column types and lengths differ in number")
        values = self._fields()
        data = struct.pack(f"<{len(values)}i", *values)
        if len(data) != self.tot_len:
            raise InternalError(
                f"index header is {len(data)} bytes but tot_len is {self.tot_len}"
            )
        return data

    @classmethod
    def deserialize(cls, data: bytes) -> "IxFileHdr":
        """Decode a header produced by :meth:`serialize`."""
        try:
            tot_len, first_free, num_pages, root_page, col_num = struct.unpack_from(
                "<5i", data, 0
            )
            offset = _FIXED_INTS * _INT_SIZE
            types = struct.unpack_from(f"<{col_num}i", data, offset)
            offset += col_num * _INT_SIZE
            lens = struct.unpack_from(f"<{col_num}i", data, offset)
            offset += col_num * _INT_SIZE
            col_tot_len, order, keys_size, first_leaf, last_leaf = struct.unpack_from(
                "<5i", data, offset
            )
            offset += _FIXED_INTS * _INT_SIZE
            col_types = [ColType(t) for t in types]
        except (struct.error, ValueError) as exc:
            raise InternalError(f"corrupt index header: {exc}") from None
        if offset != tot_len:
            raise InternalError(
                f"index header is {offset} bytes but records tot_len {tot_len}"
            )
        return cls(
            first_free_page_no=first_free,
            num_pages=num_pages,
            root_page=root_page,
            col_types=col_types,
            col_lens=list(lens),
            col_tot_len=col_tot_len,
            btree_order=order,
            keys_size=keys_size,
            first_leaf=first_leaf,
            last_leaf=last_leaf,
            tot_len=tot_len,
        )


@dataclass
class IxPageHdr:
    """Header at the start of every B+ tree node page."""

    _STRUCT: ClassVar[struct.Struct] = struct.Struct("<iii?3xii")
    SIZE: ClassVar[int] = _STRUCT.size

    next_free_page_no: int = IX_NO_PAGE
    parent: int = IX_NO_PAGE
    num_key: int = 0
    is_leaf: bool = False
    prev_leaf: int = IX_NO_PAGE
    next_leaf: int = IX_NO_PAGE

    def pack(self) -> bytes:
        """Encode the header into its fixed-size form."""
        return self._STRUCT.pack(
            self.next_free_page_no,
            self.parent,
            self.num_key,
            self.is_leaf,
            self.prev_leaf,
            self.next_leaf,
        )

    @classmethod
    def unpack(cls, data: bytes) -> "IxPageHdr":
        """Decode a header from the start of a page."""
        next_free, parent, num_key, is_leaf, prev_leaf, next_leaf = (
            cls._STRUCT.unpack_from(data, 0)
        )
        return cls(next_free, parent, num_key, is_leaf, prev_leaf, next_leaf)


@dataclass(frozen=True)
class Iid:
    """Position of a slot inside the index: leaf page and slot number."""

    page_no: int
    slot_no: int