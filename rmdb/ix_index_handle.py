"""A B+ tree index stored in a page file."""

from __future__ import annotations

import threading
from typing import Optional

from rmdb.common import Value
from rmdb.defs import Rid
from rmdb.errors import IndexEntryNotFoundError, InternalError
from rmdb.ix_defs import IX_FILE_HDR_PAGE, IX_NO_PAGE, Iid, IxFileHdr
from rmdb.ix_node import IxNodeHandle, Key, Target
from rmdb.ix_storage import PageFile


class IxIndexHandle:
    """A B+ tree of unique packed keys mapping to record ids.

    Leaves are chained in key order; ``leaf_begin`` and ``leaf_end`` delimit
    the slots of all leaves for scans.
    """

    def __init__(self, page_file: PageFile) -> None:
        self.page_file = page_file
        self.file_hdr = IxFileHdr.deserialize(bytes(page_file.read_page(IX_FILE_HDR_PAGE)))
        self.index_aborted = False
        self._root_latch = threading.RLock()

    # --- node access ------------------------------------------------------

    def _is_empty(self) -> bool:
        return self.file_hdr.root_page == IX_NO_PAGE

    def _fetch_node(self, page_no: int) -> IxNodeHandle:
        return IxNodeHandle(self.file_hdr, self.page_file.read_page(page_no), page_no)

    def _create_node(self) -> IxNodeHandle:
        self.file_hdr.num_pages += 1
        node = self._fetch_node(self.page_file.new_page())
        node.next_free_page_no = IX_NO_PAGE
        node.parent = IX_NO_PAGE
        node.prev_leaf = IX_NO_PAGE
        node.next_leaf = IX_NO_PAGE
        return node

    def _release_node(self, node: IxNodeHandle) -> None:
        self.page_file.delete_page(node.page_no)
        self.file_hdr.num_pages -= 1

    def _maintain_child(self, node: IxNodeHandle, child_idx: int) -> None:
        """Make node the parent of its child at child_idx."""
        if not node.is_leaf:
            child = self._fetch_node(node.value_at(child_idx))
            child.parent = node.page_no

    # --- search -----------------------------------------------------------

    def find_leaf_page(self, key: Target) -> IxNodeHandle:
        """Return the leaf whose key range covers key."""
        node = self._fetch_node(self.file_hdr.root_page)
        while not node.is_leaf:
            node = self._fetch_node(node.internal_lookup(key))
        return node

    def get_value(self, key: Key) -> list[Rid]:
        """Return the rids stored under key; empty if the key is absent."""
        if self._is_empty():
            return []
        leaf = self.find_leaf_page(key)
        key = bytes(key)
        idx = leaf.lower_bound(key)
        if idx is None:
            return []
        result = []
        for i in range(idx, leaf.get_size()):
            if leaf.get_key(i) != key:
                break
            result.append(leaf.get_rid(i))
        return result

    # --- insertion --------------------------------------------------------

    def _split(self, node: IxNodeHandle) -> IxNodeHandle:
        """Move the upper half of node into a new right sibling and return it."""
        size = node.get_size()
        left_size = size // 2
        right = self._create_node()
        right.parent = node.parent
        right.is_leaf = node.is_leaf

        if node.is_leaf:
            right.prev_leaf = node.page_no
            right.next_leaf = node.next_leaf
            node.next_leaf = right.page_no
            self._fetch_node(right.next_leaf).prev_leaf = right.page_no
            if node.page_no == self.file_hdr.last_leaf:
                self.file_hdr.last_leaf = right.page_no

        keys = node.keys()[left_size:]
        rids = node.rids()[left_size:]
        right.insert_pairs(0, keys, rids)
        for pos in reversed(range(left_size, size)):
            node.erase_pair(pos)

        if not right.is_leaf:
            for i in range(right.get_size()):
                self._maintain_child(right, i)
        return right

    def _insert_into_parent(self, old_node: IxNodeHandle, key: bytes, new_node: IxNodeHandle) -> None:
        if old_node.is_root:
            new_root = self._create_node()
            self.file_hdr.root_page = new_root.page_no
            new_root.is_leaf = False
            old_node.parent = new_root.page_no
            new_node.parent = new_root.page_no
            new_root.set_rid(0, Rid(old_node.page_no, 0))
            new_root.num_key = 1
            new_root.insert(key, Rid(new_node.page_no, 0))
            return

        parent = self._fetch_node(old_node.parent)
        parent.insert(key, Rid(new_node.page_no, 0))
        if parent.get_size() > self.file_hdr.btree_order:
            right = self._split(parent)
            self._insert_into_parent(parent, right.get_key(0), right)

    def insert_entry(self, key: Key, value: Rid) -> int:
        """Insert a (key, rid) pair and return the page of the leaf it went into.

        Raises IndexEntryExistsError if the key is already present.
        """
        key = bytes(key)
        with self._root_latch:
            if self._is_empty():
                root = self._create_node()
                self.file_hdr.root_page = root.page_no
                self.file_hdr.first_leaf = root.page_no
                self.file_hdr.last_leaf = root.page_no
                root.is_leaf = True
                root.parent = IX_NO_PAGE
                root.next_leaf = root.page_no
                root.prev_leaf = root.page_no
                root.insert(key, value)
                return root.page_no

            leaf = self.find_leaf_page(key)
            full = leaf.get_size() >= self.file_hdr.btree_order
            leaf.insert(key, value)
            if full:
                right = self._split(leaf)
                self._insert_into_parent(leaf, right.get_key(0), right)
            return leaf.page_no

    # --- deletion ---------------------------------------------------------

    def delete_entry(self, key: Key) -> bool:
        """Remove the pair with key; return whether it was present."""
        key = bytes(key)
        with self._root_latch:
            if self._is_empty():
                return False
            leaf = self.find_leaf_page(key)
            pos = leaf.lower_bound(key)
            if pos is None or leaf.get_key(pos) != key:
                return False
            leaf.erase_pair(pos)
            self._coalesce_or_redistribute(leaf)
            return True

    def _min_size(self) -> int:
        return max((self.file_hdr.btree_order + 1) // 2 - 1, 1)

    def _coalesce_or_redistribute(self, node: IxNodeHandle) -> bool:
        if node.is_root:
            self._adjust_root(node)
            return True

        min_size = self._min_size()
        if node.get_size() >= min_size:
            return False

        parent = self._fetch_node(node.parent)
        index = parent.find_child(node)
        neighbor_idx = index - 1 if index != 0 else 1
        neighbor = self._fetch_node(parent.value_at(neighbor_idx))

        if node.get_size() + neighbor.get_size() >= min_size * 2:
            self._redistribute(neighbor, node, parent, index)
        else:
            self._coalesce(neighbor, node, parent, index)

        self._coalesce_or_redistribute(parent)
        return True

    def _adjust_root(self, old_root: IxNodeHandle) -> bool:
        if not old_root.is_leaf and old_root.get_size() == 1:
            self.file_hdr.root_page = old_root.value_at(0)
            self._fetch_node(self.file_hdr.root_page).parent = IX_NO_PAGE
            self._release_node(old_root)
            return True
        if old_root.is_leaf and old_root.get_size() == 0:
            self.file_hdr.root_page = IX_NO_PAGE
            self.file_hdr.first_leaf = IX_NO_PAGE
            self.file_hdr.last_leaf = IX_NO_PAGE
            self._release_node(old_root)
            return True
        return False

    def _redistribute(
        self, neighbor: IxNodeHandle, node: IxNodeHandle, parent: IxNodeHandle, index: int
    ) -> None:
        """Move one pair from neighbor into node; index 0 means neighbor is on the right."""
        if not node.is_leaf:
            if index == 0:
                node.insert(parent.get_key(1), neighbor.get_rid(0))
                neighbor.erase_pair(0)
                self._maintain_child(node, node.get_size() - 1)
                parent.set_key(1, neighbor.get_key(0))
            else:
                pos = neighbor.get_size() - 1
                moved_key = neighbor.get_key(pos)
                moved_rid = neighbor.get_rid(pos)
                node.insert_pair(1, parent.get_key(index), node.get_rid(0))
                node.set_rid(0, moved_rid)
                neighbor.erase_pair(pos)
                self._maintain_child(node, 0)
                parent.set_key(index, moved_key)
        elif index == 0:
            node.insert(neighbor.get_key(0), neighbor.get_rid(0))
            neighbor.erase_pair(0)
            parent.set_key(1, neighbor.get_key(0))
        else:
            pos = neighbor.get_size() - 1
            moved_key = neighbor.get_key(pos)
            moved_rid = neighbor.get_rid(pos)
            neighbor.erase_pair(pos)
            node.insert(moved_key, moved_rid)
            parent.set_key(index, moved_key)

    def _coalesce(
        self, neighbor: IxNodeHandle, node: IxNodeHandle, parent: IxNodeHandle, index: int
    ) -> None:
        """Merge the right one of node and neighbor into the left one."""
        if index == 0:
            neighbor, node = node, neighbor
        sep_idx = 1 if index == 0 else index

        keys = node.keys()
        rids = node.rids()
        pos = neighbor.get_size()
        if not node.is_leaf and keys:
            keys[0] = parent.get_key(sep_idx)

        neighbor.insert_pairs(pos, keys, rids)
        parent.erase_pair(sep_idx)

        if not node.is_leaf:
            for i in range(pos, neighbor.get_size()):
                self._maintain_child(neighbor, i)
        else:
            neighbor.next_leaf = node.next_leaf
            self._fetch_node(node.next_leaf).prev_leaf = neighbor.page_no
            if node.page_no == self.file_hdr.last_leaf:
                self.file_hdr.last_leaf = neighbor.page_no

        self._release_node(node)

    # --- positions --------------------------------------------------------

    def _bound(self, key: Target, upper: bool) -> Iid:
        with self._root_latch:
            if self._is_empty():
                return self.leaf_end()
            leaf = self.find_leaf_page(key)
            idx = leaf.upper_bound(key) if upper else leaf.lower_bound(key)
            if idx is not None:
                return Iid(leaf.page_no, idx)
            if leaf.page_no == self.file_hdr.last_leaf:
                return Iid(leaf.page_no, leaf.get_size())
            return Iid(leaf.next_leaf, 0)

    def lower_bound(self, key: Target) -> Iid:
        """Position of the first key >= key, or leaf_end() if there is none."""
        return self._bound(key, upper=False)

    def upper_bound(self, key: Target) -> Iid:
        """Position of the first key > key, or leaf_end() if there is none."""
        return self._bound(key, upper=True)

    def leaf_begin(self) -> Iid:
        """Position of the first slot of the first leaf."""
        return Iid(self.file_hdr.first_leaf, 0)

    def leaf_end(self) -> Iid:
        """Position just past the last slot of the last leaf."""
        if self.file_hdr.last_leaf == IX_NO_PAGE:
            return Iid(IX_NO_PAGE, 0)
        node = self._fetch_node(self.file_hdr.last_leaf)
        return Iid(self.file_hdr.last_leaf, node.get_size())

    def get_rid(self, iid: Iid) -> Rid:
        """Return the rid stored at a position."""
        node = self._fetch_node(iid.page_no)
        if iid.slot_no >= node.get_size():
            raise IndexEntryNotFoundError()
        return node.get_rid(iid.slot_no)

    def get_key(self, iid: Iid) -> bytes:
        """Return the key at a position; leaf_end() yields the largest possible key."""
        if iid == self.leaf_end():
            parts = []
            for col_type, length in zip(self.file_hdr.col_types, self.file_hdr.col_lens):
                value = Value()
                value.generate_max(col_type, length)
                if value.raw is None:
                    raise InternalError("Unexpected data type")
                parts.append(value.raw)
            return b"".join(parts)
        node = self._fetch_node(iid.page_no)
        if iid.slot_no >= node.get_size():
            raise IndexEntryNotFoundError()
        return node.get_key(iid.slot_no)

    def minus_one(self, iid: Iid) -> Optional[Iid]:
        """Return the position before iid, or None if iid is leaf_begin()."""
        if iid == self.leaf_begin():
            return None
        if iid.slot_no == 0:
            prev_no = self._fetch_node(iid.page_no).prev_leaf
            prev = self._fetch_node(prev_no)
            return Iid(prev_no, prev.get_size() - 1)
        return Iid(iid.page_no, iid.slot_no - 1)