import struct

import pytest

from rmdb.defs import ColType
from rmdb.errors import InternalError
from rmdb.ix_defs import IX_NO_PAGE, Iid, IxFileHdr, IxPageHdr


def _header():
    hdr = IxFileHdr(
        first_free_page_no=IX_NO_PAGE,
        num_pages=3,
        root_page=2,
        col_types=[ColType.INT, ColType.STRING],
        col_lens=[4, 16],
        col_tot_len=20,
        btree_order=100,
        keys_size=101 * 20,
        first_leaf=2,
        last_leaf=2,
    )
    hdr.update_tot_len()
    return hdr


def test_col_num_follows_types():
    assert _header().col_num == 2


def test_serialized_length_matches_tot_len():
    hdr = _header()
    assert len(hdr.serialize()) == hdr.tot_len


def test_tot_len_grows_with_columns():
    hdr = _header()
    base = hdr.tot_len
    hdr.col_types.append(ColType.FLOAT)
    hdr.col_lens.append(4)
    hdr.update_tot_len()
    assert hdr.tot_len == base + 8


def test_serialize_starts_with_tot_len():
    hdr = _header()
    data = hdr.serialize()
    assert data[:4] == struct.pack("<i", hdr.tot_len)
    assert data[4:8] == struct.pack("<i", IX_NO_PAGE)


def test_round_trip():
    hdr = _header()
    back = IxFileHdr.deserialize(hdr.serialize())
    assert back == hdr
    assert back.col_types == [ColType.INT, ColType.STRING]


def test_deserialize_ignores_trailing_bytes():
    hdr = _header()
    back = IxFileHdr.deserialize(hdr.serialize() + bytes(100))
    assert back == hdr


def test_serialize_without_tot_len_fails():
    hdr = _header()
    hdr.tot_len = 0
    with pytest.raises(InternalError):
        hdr.serialize()


def test_serialize_mismatched_columns_fails():
    hdr = _header()
    hdr.col_lens.append(8)
    with pytest.raises(InternalError):
        hdr.serialize()


def test_deserialize_truncated_fails():
    data = _header().serialize()
    with pytest.raises(InternalError):
        IxFileHdr.deserialize(data[:10])


def test_page_hdr_size():
    assert IxPageHdr.SIZE == 24
    assert len(IxPageHdr().pack()) == IxPageHdr.SIZE


def test_page_hdr_round_trip():
    hdr = IxPageHdr(
        next_free_page_no=IX_NO_PAGE,
        parent=7,
        num_key=5,
        is_leaf=True,
        prev_leaf=1,
        next_leaf=9,
    )
    assert IxPageHdr.unpack(hdr.pack() + bytes(40)) == hdr


def test_page_hdr_leaf_flag_byte():
    leaf = IxPageHdr(is_leaf=True).pack()
    inner = IxPageHdr(is_leaf=False).pack()
    assert leaf[12] == 1
    assert inner[12] == 0


def test_iid_equality():
    assert Iid(3, 4) == Iid(3, 4)
    assert Iid(3, 4) != Iid(3, 5)
    assert len({Iid(1, 1), Iid(1, 1), Iid(2, 0)}) == 2