"""Exception hierarchy of the database engine."""

from __future__ import annotations

import os
from collections.abc import Sequence


class RMDBError(Exception):
    """Base error; its message always starts with 'Error: '."""

    def __init__(self, msg: str = "") -> None:
        self.msg = "Error: " + msg
        super().__init__(self.msg)

    def __str__(self) -> str:
        return self.msg


class InternalError(RMDBError):
    pass


class UnixError(RMDBError):
    """An operating-system error described by its errno."""

    def __init__(self, err_no: int) -> None:
        self.errno = err_no
        super().__init__(os.strerror(err_no))


class FileNotOpenError(RMDBError):
    def __init__(self, fd: int) -> None:
        super().__init__(f"Invalid file descriptor: {fd}")


class FileNotClosedError(RMDBError):
    def __init__(self, filename: str) -> None:
        super().__init__("File is opened: " + filename)


class DbFileExistsError(RMDBError):
    def __init__(self, filename: str) -> None:
        super().__init__("File already exists: " + filename)


class DbFileNotFoundError(RMDBError):
    def __init__(self, filename: str) -> None:
        super().__init__("File not found: " + filename)


class RecordNotFoundError(RMDBError):
    def __init__(self, page_no: int, slot_no: int) -> None:
        super().__init__(f"Record not found: ({page_no},{slot_no})")


class InvalidRecordSizeError(RMDBError):
    def __init__(self, record_size: int) -> None:
        super().__init__(f"Invalid record size: {record_size}")


class InvalidColLengthError(RMDBError):
    def __init__(self, col_len: int) -> None:
        super().__init__(f"Invalid column length: {col_len}")


class IndexEntryNotFoundError(RMDBError):
    def __init__(self) -> None:
        super().__init__("Index entry not found")


class IndexEntryExistsError(RMDBError):
    def __init__(self) -> None:
        super().__init__("Index entry already exists")


class DatabaseNotFoundError(RMDBError):
    def __init__(self, db_name: str) -> None:
        super().__init__("Database not found: " + db_name)


class DatabaseExistsError(RMDBError):
    def __init__(self, db_name: str) -> None:
        super().__init__("Database already exists: " + db_name)


class TableNotFoundError(RMDBError):
    def __init__(self, tab_name: str) -> None:
        super().__init__("Table not found: " + tab_name)


class TableExistsError(RMDBError):
    def __init__(self, tab_name: str) -> None:
        super().__init__("Table already exists: " + tab_name)


class ColumnNotFoundError(RMDBError):
    def __init__(self, col_name: str) -> None:
        super().__init__("Column not found: " + col_name)


class IndexNotFoundError(RMDBError):
    def __init__(self, tab_name: str, col_names: Sequence[str]) -> None:
        super().__init__(f"Index not found: {tab_name}.({', '.join(col_names)})")


class IndexExistsError(RMDBError):
    def __init__(self, tab_name: str, col_names: Sequence[str]) -> None:
        super().__init__(f"Index already exists: {tab_name}.({', '.join(col_names)})")


class InvalidValueCountError(RMDBError):
    def __init__(self) -> None:
        super().__init__("Invalid value count")


class StringOverflowError(RMDBError):
    def __init__(self) -> None:
        super().__init__("String is too long")


class IncompatibleTypeError(RMDBError):
    def __init__(self, lhs: str, rhs: str) -> None:
        super().__init__(f"Incompatible type error: lhs {lhs}, rhs {rhs}")


class AmbiguousColumnError(RMDBError):
    def __init__(self, col_name: str) -> None:
        super().__init__("Ambiguous column: " + col_name)


class SelectNonGroupByError(RMDBError):
    def __init__(self) -> None:
        super().__init__("Non-aggregate column not in GROUP BY clause")


class ParserError(RMDBError):
    def __init__(self, line: int, column: int, msg: str) -> None:
        super().__init__(f"Parser Error at line {line} column {column}: {msg}")


class PageNotExistError(RMDBError):
    def __init__(self, table_name: str, page_no: int) -> None:
        super().__init__(f"Page {page_no} in table {table_name}not exits")