import random
import struct
from dataclasses import dataclass

import pytest

from rmdb.defs import ColType, Rid
from rmdb.errors import InternalError
from rmdb.ix_manager import IxManager
from rmdb.ix_scan import IxScan


@dataclass
class Col:
    name: str
    type: ColType
    len: int


COLS = [Col("id", ColType.INT, 4)]


def key(k):
    return struct.pack("<i", k)


@pytest.fixture
def handle(tmp_path):
    manager = IxManager(tmp_path)
    manager.create_index("t", COLS)
    ih = manager.open_index("t", COLS)
    yield ih
    manager.close_index(ih)


def fill(ih, keys):
    for k in keys:
        ih.insert_entry(key(k), Rid(k, k))


def test_empty_index_scan_is_immediately_at_end(handle):
    scan = IxScan(handle, handle.leaf_begin(), handle.leaf_end())
    assert scan.is_end()
    assert list(scan) == []


def test_next_at_end_raises(handle):
    scan = IxScan(handle, handle.leaf_begin(), handle.leaf_end())
    with pytest.raises(InternalError):
        scan.next()


def test_full_scan_single_leaf_in_key_order(handle):
    keys = [5, 1, 9, 3, 7]
    fill(handle, keys)
    scan = IxScan(handle, handle.leaf_begin(), handle.leaf_end())
    assert list(scan) == [Rid(k, k) for k in sorted(keys)]
    assert scan.is_end()


def test_full_scan_over_many_leaves(handle):
    keys = list(range(1000))
    random.Random(7).shuffle(keys)
    fill(handle, keys)
    scan = IxScan(handle, handle.leaf_begin(), handle.leaf_end())
    assert list(scan) == [Rid(k, k) for k in range(1000)]


def test_range_scan_between_bounds(handle):
    fill(handle, range(1000))
    scan = IxScan(handle, handle.lower_bound(key(100)), handle.upper_bound(key(199)))
    assert list(scan) == [Rid(k, k) for k in range(100, 200)]


def test_range_scan_with_lower_and_lower_bound_excludes_upper(handle):
    fill(handle, range(0, 2000, 2))
    scan = IxScan(handle, handle.lower_bound(key(11)), handle.lower_bound(key(21)))
    assert list(scan) == [Rid(k, k) for k in (12, 14, 16, 18, 20)]


def test_manual_stepping_matches_iteration(handle):
    fill(handle, range(700))
    scan = IxScan(handle, handle.leaf_begin(), handle.leaf_end())
    seen = []
    while not scan.is_end():
        seen.append(scan.rid())
        scan.next()
    assert seen == [Rid(k, k) for k in range(700)]
    assert scan.iid == handle.leaf_end()


def test_iid_starts_at_lower(handle):
    fill(handle, range(10))
    lower = handle.lower_bound(key(4))
    scan = IxScan(handle, lower, handle.leaf_end())
    assert scan.iid == lower
    assert scan.rid() == Rid(4, 4)