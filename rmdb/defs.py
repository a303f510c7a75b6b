"""Core identifiers, column types, record scans and storage constants."""

from __future__ import annotations

import abc
import enum
from dataclasses import dataclass

BUFFER_LENGTH = 8192

INVALID_FRAME_ID = -1
INVALID_PAGE_ID = -1
INVALID_TXN_ID = -1
INVALID_TIMESTAMP = -1
INVALID_LSN = -1
HEADER_PAGE_ID = 0
PAGE_SIZE = 4096
BUFFER_POOL_SIZE = 65536
LOG_BUFFER_SIZE = 1024 * PAGE_SIZE
BUCKET_SIZE = 50

LOG_FILE_NAME = "db.log"
REPLACER_TYPE = "LRU"
DB_META_NAME = "db.meta"


@dataclass(frozen=True)
class Rid:
    """Location of a record: page number and slot number."""

    page_no: int
    slot_no: int

    def __str__(self) -> str:
        return f"({self.page_no}, {self.slot_no})"


class ColType(enum.IntEnum):
    """Type of a table column."""

    INT = 0
    FLOAT = 1
    STRING = 2
    DATETIME = 3


_COLTYPE_NAMES = {
    ColType.INT: "INT",
    ColType.FLOAT: "FLOAT",
    ColType.STRING: "STRING",
    ColType.DATETIME: "DATETIME",
}


def coltype2str(col_type: ColType) -> str:
    """Return the display name of a column type."""
    return _COLTYPE_NAMES[ColType(col_type)]


class RecScan(abc.ABC):
    """A cursor over record ids."""

    @abc.abstractmethod
    def next(self) -> None:
        """Advance to the next record."""

    @abc.abstractmethod
    def is_end(self) -> bool:
        """Return True once the scan is exhausted."""

    @abc.abstractmethod
    def rid(self) -> Rid:
        """Return the id of the current record."""