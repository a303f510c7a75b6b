# rmdb

Building blocks for a small relational database engine, in plain Python with
no third-party dependencies.

| Module | What it holds |
| --- | --- |
| `rmdb.defs` | `Rid` (page and slot of a record), `ColType` with `coltype2str`, the abstract `RecScan` cursor, and storage constants such as `PAGE_SIZE` (4096) and `BUFFER_LENGTH` (8192). |
| `rmdb.errors` | The exception hierarchy rooted at `RMDBError`. Every message starts with `Error: `; examples are `TableNotFoundError`, `IndexEntryExistsError`, `StringOverflowError` and `InvalidColLengthError`. |
| `rmdb.common` | Typed `Value`s with their raw little-endian encodings (`init_raw`, `generate_max`, `generate_min`), `CompOp`, `value_comp`, `type_compatible`, and query pieces: `TabCol`, `AggrType`, `AggrCol`, `Condition`, `HavingCond`, `SetClause`, `SubQueryClause`. |
| `rmdb.record_printer` | `RecordPrinter`, which renders result tables into a bounded `OutputBuffer`. |
| `rmdb.ix_defs` | The on-disk index file header `IxFileHdr`, the node page header `IxPageHdr`, and `Iid`, a slot position within the leaves. |
| `rmdb.ix_compare` | Ordering of packed keys: `compare_column`, `ix_compare`, `ix_compare_values`. |
| `rmdb.ix_storage` | `PageFile`, a file of 4096-byte pages with an in-memory page cache. |
| `rmdb.ix_node` | `IxNodeHandle`, a view of one B+ tree node inside a page buffer. |
| `rmdb.ix_index_handle` | `IxIndexHandle`, the B+ tree: insert, delete, lookup and bounds. |
| `rmdb.ix_scan` | `IxScan`, a cursor along the leaf chain between two positions. |
| `rmdb.ix_manager` | `IxManager`, which creates, opens, closes and removes index files. |

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Comparing values

```python
from rmdb.common import CompOp, Value, value_comp
from rmdb.defs import ColType

a = Value(type=ColType.INT, int_val=3)
b = Value(type=ColType.FLOAT, float_val=3.5)
value_comp(a, b, CompOp.LT)   # True: INT is widened to FLOAT

a.init_raw(4)
a.raw                          # b'\x03\x00\x00\x00'
```

If you compare a string with a number, `value_comp` raises
`IncompatibleTypeError`. If a string is longer than its column,
`Value.init_raw` raises `StringOverflowError`.

## An index on an integer column

`IxManager` keeps index files in one directory, which defaults to the current
one. An index file is named after the table and its columns, for example
`orders_id.idx`. To create an index you need column descriptions with `name`,
`type` and `len` attributes. To open, check or destroy an index, a list of
column names is enough.

Keys are the packed column encodings joined together. An INT is 4 bytes,
little-endian. A FLOAT is 4 bytes. A STRING is padded with zero bytes to its
column length. Each key maps to a `Rid`. Keys are unique: inserting a key a
second time raises `IndexEntryExistsError`.

```python
import struct
from dataclasses import dataclass

from rmdb.defs import ColType, Rid
from rmdb.ix_manager import IxManager
from rmdb.ix_scan import IxScan


@dataclass
class Col:
    name: str
    type: ColType
    len: int


def key(n: int) -> bytes:
    return struct.pack("<i", n)


manager = IxManager("data")
cols = [Col("id", ColType.INT, 4)]

manager.create_index("orders", cols)
handle = manager.open_index("orders", ["id"])

for n in range(100):
    handle.insert_entry(key(n), Rid(n // 10, n % 10))

handle.get_value(key(42))          # [Rid(page_no=4, slot_no=2)]
handle.delete_entry(key(42))       # True; returns False if the key is absent

# every record whose key lies in [10, 20]
scan = IxScan(handle, handle.lower_bound(key(10)), handle.upper_bound(key(20)))
rids = list(scan)

manager.close_index(handle)        # writes the header back, flushes, closes
```

Positions:

- `lower_bound(key)` gives the `Iid` of the first key that is greater than or equal to `key`.
- `upper_bound(key)` gives the `Iid` of the first key that is greater than `key`.
- `leaf_begin()` and `leaf_end()` bound a scan over the whole index.
- `get_rid(iid)` returns the `Rid` stored at a position, and `get_key(iid)` returns the key stored there.
- `minus_one(iid)` steps back one position. It returns `None` at the beginning.

The bounds also accept a sequence of `Value`s, one per column, in place of a
packed key.

`IxManager.exists` tells whether an index file is there.
`IxManager.destroy_index` removes the file; if the file is missing it raises
`DbFileNotFoundError`. Creating an index whose file already exists raises
`DbFileExistsError`. If the columns total more than 512 bytes, creating the
index raises `InvalidColLengthError`.

## Printing results

```python
from rmdb.record_printer import OutputBuffer, RecordPrinter

out = OutputBuffer()
printer = RecordPrinter(2)
printer.print_separator(out)
printer.print_record(["id", "name"], out)
printer.print_separator(out)
RecordPrinter.print_record_count(0, out)
print(out.getvalue())
```

Table layout:

- Each cell is 16 characters wide and right-aligned.
- A longer value is cut to 13 characters followed by `...`.

Buffer limits:

- An `OutputBuffer` holds 8192 bytes by default.
- It always keeps 40 bytes free for the closing record count.
- Once a piece of output does not fit, the buffer marks itself truncated and accepts no more table output.
- The record count line is then preceded by `... ...`.

## What this package does not do

The package provides values, errors, result formatting and column indexes. It
does not include:

- an SQL parser, a query planner or query executors;
- storage for table records;
- a client or a server;
- transactions, locking or logging.

Other limits of the index storage:

- `PageFile` keeps every page it has read in memory and writes pages only on `flush` or `close`. There is no bounded buffer pool and no page eviction.
- `IxIndexHandle` serializes changes with a single lock. It does not latch individual pages.