"""Sequential scans over the leaf slots of a B+ tree index."""

from __future__ import annotations

from collections.abc import Iterator

from rmdb.defs import RecScan, Rid
from rmdb.errors import InternalError
from rmdb.ix_defs import Iid
from rmdb.ix_index_handle import IxIndexHandle
from rmdb.ix_node import IxNodeHandle


class IxScan(RecScan):
    """Walks the leaf chain of an index from one position up to another.

    The scan starts at ``lower`` and stops when it reaches ``upper``; the slot
    at ``upper`` itself is not visited.
    """

    def __init__(self, ih: IxIndexHandle, lower: Iid, upper: Iid) -> None:
        self._ih = ih
        self._iid = lower
        self._end = upper

    @property
    def iid(self) -> Iid:
        """The current position of the scan."""
        return self._iid

    def _node(self, page_no: int) -> IxNodeHandle:
        page = self._ih.page_file.read_page(page_no)
        return IxNodeHandle(self._ih.file_hdr, page, page_no)

    def next(self) -> None:
        """Move to the following slot, crossing into the next leaf when needed."""
        if self.is_end():
            raise InternalError("index scan is already at its end")
        node = self._node(self._iid.page_no)
        if not node.is_leaf:
            raise InternalError(f"page {self._iid.page_no} is not a leaf")
        if self._iid.slot_no >= node.get_size():
            raise InternalError(
                f"slot {self._iid.slot_no} is past the end of leaf {self._iid.page_no}"
            )
        slot_no = self._iid.slot_no + 1
        page_no = self._iid.page_no
        if page_no != self._ih.file_hdr.last_leaf and slot_no == node.get_size():
            page_no = node.next_leaf
            slot_no = 0
        self._iid = Iid(page_no, slot_no)

    def is_end(self) -> bool:
        return self._iid == self._end

    def rid(self) -> Rid:
        """The record id stored at the current position."""
        return self._ih.get_rid(self._iid)

    def __iter__(self) -> Iterator[Rid]:
        """Yield the remaining record ids, advancing the scan as it goes."""
        while not self.is_end():
            yield self.rid()
            self.next()