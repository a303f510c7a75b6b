"""A view over one B+ tree node stored in a page buffer."""

from __future__ import annotations

import bisect
import struct
from collections.abc import Sequence
from typing import Callable, Optional, Union

from rmdb.common import Value
from rmdb.defs import INVALID_PAGE_ID, Rid
from rmdb.errors import IndexEntryExistsError, InternalError
from rmdb.ix_compare import ix_compare, ix_compare_values
from rmdb.ix_defs import RID_FORMAT, RID_SIZE, IxFileHdr, IxPageHdr

Key = Union[bytes, bytearray, memoryview]
Target = Union[Key, Sequence[Value]]

_RID = struct.Struct(RID_FORMAT)


class _HeaderField:
    """A page header field read from and written to the node's page."""

    def __init__(self, fmt: str, offset: int) -> None:
        self._struct = struct.Struct(fmt)
        self._offset = offset

    def __get__(self, node, owner=None):
        if node is None:
            return self
        return self._struct.unpack_from(node.page, self._offset)[0]

    def __set__(self, node, value) -> None:
        self._struct.pack_into(node.page, self._offset, value)


class IxNodeHandle:
    """A B+ tree node: a page header, then the keys, then the rids.

    All changes are made in place in the page buffer.
    """

    next_free_page_no = _HeaderField("<i", 0)
    parent = _HeaderField("<i", 4)
    num_key = _HeaderField("<i", 8)
    is_leaf = _HeaderField("<?", 12)
    prev_leaf = _HeaderField("<i", 16)
    next_leaf = _HeaderField("<i", 20)

    def __init__(self, file_hdr: IxFileHdr, page: bytearray, page_no: int) -> None:
        self.file_hdr = file_hdr
        self.page = page
        self.page_no = page_no
        self._keys_offset = IxPageHdr.SIZE
        self._rids_offset = IxPageHdr.SIZE + file_hdr.keys_size
        needed = self._rids_offset + self.capacity * RID_SIZE
        if len(page) < needed or file_hdr.keys_size < self.capacity * self.key_size:
            raise InternalError(f"page of {len(page)} bytes cannot hold this node layout")

    # --- header -----------------------------------------------------------

    @property
    def page_hdr(self) -> IxPageHdr:
        """A snapshot of the page header."""
        return IxPageHdr.unpack(self.page)

    @page_hdr.setter
    def page_hdr(self, hdr: IxPageHdr) -> None:
        self.page[: IxPageHdr.SIZE] = hdr.pack()

    @property
    def key_size(self) -> int:
        return self.file_hdr.col_tot_len

    @property
    def capacity(self) -> int:
        """Number of key slots, one more than the tree order."""
        return self.file_hdr.btree_order + 1

    @property
    def max_size(self) -> int:
        return self.file_hdr.btree_order + 1

    @property
    def min_size(self) -> int:
        return self.max_size // 2

    @property
    def is_root(self) -> bool:
        return self.parent == INVALID_PAGE_ID

    def get_size(self) -> int:
        return self.num_key

    def set_size(self, size: int) -> None:
        if not 0 <= size <= self.capacity:
            raise IndexError(f"node size {size} out of range")
        self.num_key = size

    # --- slots ------------------------------------------------------------

    def _check_slot(self, idx: int) -> None:
        if not 0 <= idx < self.capacity:
            raise IndexError(f"slot {idx} out of range")

    def _check_key(self, key: Key) -> bytes:
        key = bytes(key)
        if len(key) != self.key_size:
            raise ValueError(f"key is {len(key)} bytes, expected {self.key_size}")
        return key

    def get_key(self, key_idx: int) -> bytes:
        self._check_slot(key_idx)
        start = self._keys_offset + key_idx * self.key_size
        return bytes(self.page[start:start + self.key_size])

    def set_key(self, key_idx: int, key: Key) -> None:
        self._check_slot(key_idx)
        key = self._check_key(key)
        start = self._keys_offset + key_idx * self.key_size
        self.page[start:start + self.key_size] = key

    def get_rid(self, rid_idx: int) -> Rid:
        self._check_slot(rid_idx)
        return Rid(*_RID.unpack_from(self.page, self._rids_offset + rid_idx * RID_SIZE))

    def set_rid(self, rid_idx: int, rid: Rid) -> None:
        self._check_slot(rid_idx)
        _RID.pack_into(self.page, self._rids_offset + rid_idx * RID_SIZE, rid.page_no, rid.slot_no)

    def value_at(self, i: int) -> int:
        """Page number of the i-th child."""
        return self.get_rid(i).page_no

    def key_at(self, i: int) -> int:
        """The first four bytes of the i-th key read as an integer."""
        return struct.unpack_from("<i", self.get_key(i))[0]

    def keys(self) -> list[bytes]:
        return [self.get_key(i) for i in range(self.num_key)]

    def rids(self) -> list[Rid]:
        return [self.get_rid(i) for i in range(self.num_key)]

    # --- search -----------------------------------------------------------

    def _compare(self, idx: int, target: Target) -> int:
        key = self.get_key(idx)
        types, lens = self.file_hdr.col_types, self.file_hdr.col_lens
        if isinstance(target, (bytes, bytearray, memoryview)):
            return ix_compare(key, bytes(target), types, lens)
        return ix_compare_values(key, list(target), types, lens)

    def _first(self, pred: Callable[[int], bool]) -> Optional[int]:
        start = 0 if self.is_leaf else 1
        size = self.num_key
        pos = start + bisect.bisect_left(range(start, size), True, key=pred)
        return pos if pos < size else None

    def lower_bound(self, target: Target) -> Optional[int]:
        """Index of the first key >= target, or None if there is none.

        Internal nodes are searched from slot 1, slot 0 holding no key.
        """
        return self._first(lambda i: self._compare(i, target) >= 0)

    def upper_bound(self, target: Target) -> Optional[int]:
        """Index of the first key > target, or None if there is none."""
        return self._first(lambda i: self._compare(i, target) > 0)

    def leaf_lookup(self, key: Target) -> Optional[Rid]:
        """Return the rid stored under key in this leaf, or None."""
        pos = self.lower_bound(key)
        if pos is None or self._compare(pos, key) != 0:
            return None
        return self.get_rid(pos)

    def internal_lookup(self, key: Target) -> int:
        """Return the page number of the child whose subtree holds key."""
        pos = self.lower_bound(key)
        if pos is None:
            pos = self.num_key - 1
        elif isinstance(key, (bytes, bytearray, memoryview)):
            if self.get_key(pos) != bytes(key):
                pos -= 1
        elif self._compare(pos, key) != 0:
            pos -= 1
        return self.value_at(pos)

    # --- modification -----------------------------------------------------

    def insert_pairs(self, pos: int, keys: Sequence[Key], rids: Sequence[Rid]) -> None:
        """Insert consecutive (key, rid) pairs so the first one lands at pos."""
        keys = [self._check_key(k) for k in keys]
        rids = list(rids)
        if len(keys) != len(rids):
            raise ValueError("keys and rids differ in number")
        size, n = self.num_key, len(keys)
        if not 0 <= pos <= size:
            raise IndexError(f"insert position {pos} out of range")
        if size + n > self.capacity:
            raise InternalError(f"node {self.page_no} cannot hold {size + n} keys")
        ks, ko, ro, p = self.key_size, self._keys_offset, self._rids_offset, self.page
        p[ko + (pos + n) * ks:ko + (size + n) * ks] = p[ko + pos * ks:ko + size * ks]
        p[ko + pos * ks:ko + (pos + n) * ks] = b"".join(keys)
        p[ro + (pos + n) * RID_SIZE:ro + (size + n) * RID_SIZE] = p[ro + pos * RID_SIZE:ro + size * RID_SIZE]
        p[ro + pos * RID_SIZE:ro + (pos + n) * RID_SIZE] = b"".join(
            _RID.pack(r.page_no, r.slot_no) for r in rids
        )
        self.num_key = size + n

    def insert_pair(self, pos: int, key: Key, rid: Rid) -> None:
        self.insert_pairs(pos, [key], [rid])

    def insert(self, key: Key, value: Rid) -> int:
        """Insert a pair in key order and return the new number of keys.

        Raises IndexEntryExistsError if the key is already present.
        """
        key = self._check_key(key)
        if self.num_key == 0:
            pos = 0
        else:
            found = self.lower_bound(key)
            if found is None:
                pos = self.num_key
            elif self.get_key(found) == key:
                raise IndexEntryExistsError()
            else:
                pos = found
        self.insert_pair(pos, key, value)
        return self.num_key

    def erase_pair(self, pos: int) -> None:
        """Remove the pair at pos."""
        size = self.num_key
        if not 0 <= pos < size:
            raise IndexError(f"erase position {pos} out of range")
        ks, ko, ro, p = self.key_size, self._keys_offset, self._rids_offset, self.page
        p[ko + pos * ks:ko + (size - 1) * ks] = p[ko + (pos + 1) * ks:ko + size * ks]
        p[ko + (size - 1) * ks:ko + size * ks] = bytes(ks)
        p[ro + pos * RID_SIZE:ro + (size - 1) * RID_SIZE] = p[ro + (pos + 1) * RID_SIZE:ro + size * RID_SIZE]
        p[ro + (size - 1) * RID_SIZE:ro + size * RID_SIZE] = bytes(RID_SIZE)
        self.num_key = size - 1

    def remove(self, key: Target) -> int:
        """Remove the pair with key if present; return the number of keys left."""
        pos = self.lower_bound(key)
        if pos is not None and self._compare(pos, key) == 0:
            self.erase_pair(pos)
        return self.num_key

    def find_child(self, child: "IxNodeHandle | int") -> int:
        """Return the slot of this node that points at child."""
        child_no = child.page_no if isinstance(child, IxNodeHandle) else child
        for idx in range(self.num_key):
            if self.value_at(idx) == child_no:
                return idx
        raise InternalError(f"page {child_no} is not a child of page {self.page_no}")

    def remove_and_return_only_child(self) -> int:
        """Empty a node holding a single child and return that child's page."""
        if self.num_key != 1:
            raise InternalError(f"node {self.page_no} has {self.num_key} children, not one")
        child = self.value_at(0)
        self.erase_pair(0)
        return child