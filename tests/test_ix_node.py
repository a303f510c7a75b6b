import struct

import pytest

from rmdb.common import Value
from rmdb.defs import PAGE_SIZE, ColType, Rid
from rmdb.errors import IndexEntryExistsError, InternalError
from rmdb.ix_defs import IxFileHdr, IxPageHdr
from rmdb.ix_node import IxNodeHandle

ORDER = 4


def key(i: int) -> bytes:
    return struct.pack("<i", i)


def int_hdr() -> IxFileHdr:
    return IxFileHdr(
        col_types=[ColType.INT],
        col_lens=[4],
        col_tot_len=4,
        btree_order=ORDER,
        keys_size=(ORDER + 1) * 4,
    )


def make_node(is_leaf=True, hdr=None, page=None):
    hdr = hdr or int_hdr()
    page = page if page is not None else bytearray(PAGE_SIZE)
    node = IxNodeHandle(hdr, page, 7)
    node.page_hdr = IxPageHdr(parent=-1, num_key=0, is_leaf=is_leaf)
    return node


def leaf_with(*values):
    node = make_node()
    for v in values:
        node.insert(key(v), Rid(v, v + 1))
    return node


def make_internal():
    node = make_node(is_leaf=False)
    node.set_rid(0, Rid(100, 0))
    node.set_size(1)
    node.insert(key(10), Rid(101, 0))
    node.insert(key(20), Rid(102, 0))
    return node


def test_insert_keeps_keys_sorted():
    node = make_node()
    sizes = [node.insert(key(v), Rid(v, 0)) for v in (5, 1, 3)]
    assert sizes == [1, 2, 3]
    assert node.keys() == [key(1), key(3), key(5)]
    assert node.rids() == [Rid(1, 0), Rid(3, 0), Rid(5, 0)]


def test_insert_duplicate_raises():
    node = leaf_with(1, 2)
    with pytest.raises(IndexEntryExistsError):
        node.insert(key(2), Rid(9, 9))
    assert node.get_size() == 2


def test_lower_and_upper_bound_on_leaf():
    node = leaf_with(10, 20, 30)
    lo = node.lower_bound(key(20))
    hi = node.upper_bound(key(20))
    assert node.get_key(lo) == key(20)
    assert node.get_key(hi) == key(30)
    assert node.lower_bound(key(5)) == 0
    assert node.lower_bound(key(35)) is None
    assert node.upper_bound(key(30)) is None


def test_bounds_with_values():
    node = leaf_with(10, 20, 30)
    target = [Value(type=ColType.INT, int_val=15)]
    assert node.lower_bound(target) == node.lower_bound(key(15))
    assert node.upper_bound([Value(type=ColType.FLOAT, float_val=20.0)]) == node.upper_bound(key(20))


def test_leaf_lookup():
    node = leaf_with(10, 20, 30)
    assert node.leaf_lookup(key(20)) == Rid(20, 21)
    assert node.leaf_lookup(key(25)) is None
    assert node.leaf_lookup(key(99)) is None


def test_internal_lookup_routes_to_child():
    node = make_internal()
    assert node.internal_lookup(key(5)) == 100
    assert node.internal_lookup(key(10)) == 101
    assert node.internal_lookup(key(15)) == 101
    assert node.internal_lookup(key(20)) == 102
    assert node.internal_lookup(key(25)) == 102
    assert node.internal_lookup([Value(type=ColType.INT, int_val=12)]) == 101


def test_internal_bounds_skip_slot_zero():
    node = make_internal()
    assert node.lower_bound(key(-1000)) == 1


def test_insert_pairs_in_middle():
    node = leaf_with(1, 5)
    node.insert_pairs(1, [key(2), key(3)], [Rid(2, 0), Rid(3, 0)])
    assert node.keys() == [key(1), key(2), key(3), key(5)]
    assert node.rids() == [Rid(1, 2), Rid(2, 0), Rid(3, 0), Rid(5, 6)]


def test_insert_pairs_out_of_range_and_overflow():
    node = leaf_with(1)
    with pytest.raises(IndexError):
        node.insert_pair(3, key(2), Rid(0, 0))
    full = leaf_with(*range(ORDER + 1))
    with pytest.raises(InternalError):
        full.insert_pair(0, key(-1), Rid(0, 0))


def test_erase_pair_and_remove():
    node = leaf_with(1, 2, 3)
    node.erase_pair(0)
    assert node.keys() == [key(2), key(3)]
    assert node.remove(key(3)) == 1
    assert node.remove(key(42)) == 1
    assert node.keys() == [key(2)]
    with pytest.raises(IndexError):
        node.erase_pair(1)


def test_wrong_key_length_rejected():
    node = make_node()
    with pytest.raises(ValueError):
        node.insert(b"\x01\x02", Rid(0, 0))


def test_find_child_and_only_child():
    node = make_internal()
    child = IxNodeHandle(int_hdr(), bytearray(PAGE_SIZE), 102)
    assert node.value_at(node.find_child(child)) == 102
    with pytest.raises(InternalError):
        node.find_child(555)
    with pytest.raises(InternalError):
        node.remove_and_return_only_child()
    node.erase_pair(2)
    node.erase_pair(1)
    assert node.remove_and_return_only_child() == 100
    assert node.get_size() == 0


def test_header_fields_live_in_page():
    page = bytearray(PAGE_SIZE)
    node = make_node(page=page)
    node.parent = 42
    node.next_leaf = 3
    node.prev_leaf = 1
    node.insert(key(8), Rid(8, 8))
    hdr = IxPageHdr.unpack(page)
    assert (hdr.parent, hdr.next_leaf, hdr.prev_leaf, hdr.num_key, hdr.is_leaf) == (42, 3, 1, 1, True)
    again = IxNodeHandle(int_hdr(), page, 7)
    assert again.keys() == [key(8)]
    assert not again.is_root


def test_string_keys_ordered_bytewise():
    hdr = IxFileHdr(
        col_types=[ColType.STRING],
        col_lens=[4],
        col_tot_len=4,
        btree_order=ORDER,
        keys_size=(ORDER + 1) * 4,
    )
    node = make_node(hdr=hdr)
    for word in (b"dog\0", b"ant\0", b"cat\0"):
        node.insert(word, Rid(0, 0))
    assert node.keys() == [b"ant\0", b"cat\0", b"dog\0"]
    assert node.leaf_lookup([Value(type=ColType.STRING, str_val="cat")]) == Rid(0, 0)


def test_page_too_small_rejected():
    with pytest.raises(InternalError):
        IxNodeHandle(int_hdr(), bytearray(16), 0)