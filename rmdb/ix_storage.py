"""Page-granular access to an index file with an in-memory page cache."""

from __future__ import annotations

import os
from typing import BinaryIO, Optional

from rmdb.defs import PAGE_SIZE
from rmdb.errors import (
    DbFileExistsError,
    DbFileNotFoundError,
    FileNotOpenError,
    PageNotExistError,
)


class PageFile:
    """A file of fixed-size pages.

    Pages handed out by :meth:`read_page` are cached, mutable buffers; changes
    made to them, or through :meth:`write_page`, reach the disk on :meth:`flush`.
    """

    def __init__(self, path: "str | os.PathLike[str]", *, create: bool = False) -> None:
        self.path = os.fspath(path)
        try:
            self._file: Optional[BinaryIO] = open(self.path, "x+b" if create else "r+b")
        except FileExistsError:
            raise DbFileExistsError(self.path) from None
        except FileNotFoundError:
            raise DbFileNotFoundError(self.path) from None
        self._fd = self._file.fileno()
        self._pages: dict[int, bytearray] = {}
        size = os.fstat(self._fd).st_size
        self._next_page_no = -(-size // PAGE_SIZE)

    def __enter__(self) -> "PageFile":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    @property
    def closed(self) -> bool:
        return self._file is None

    def _require_open(self) -> BinaryIO:
        if self._file is None:
            raise FileNotOpenError(self._fd)
        return self._file

    def _check_page_no(self, page_no: int) -> None:
        if page_no < 0:
            raise PageNotExistError(self.path, page_no)

    def read_page(self, page_no: int) -> bytearray:
        """Return the cached buffer of a page, loading it from disk if needed."""
        file = self._require_open()
        self._check_page_no(page_no)
        page = self._pages.get(page_no)
        if page is None:
            file.seek(page_no * PAGE_SIZE)
            page = bytearray(file.read(PAGE_SIZE).ljust(PAGE_SIZE, b"\0"))
            self._pages[page_no] = page
        return page

    def write_page(self, page_no: int, data: bytes) -> None:
        """Overwrite the start of a page with data, keeping the rest of it."""
        if len(data) > PAGE_SIZE:
            raise ValueError(f"{len(data)} bytes do not fit in a page of {PAGE_SIZE}")
        page = self.read_page(page_no)
        page[: len(data)] = data
        self._next_page_no = max(self._next_page_no, page_no + 1)

    def new_page(self) -> int:
        """Allocate a zeroed page at the end of the file and return its number."""
        self._require_open()
        page_no = self._next_page_no
        self._next_page_no += 1
        self._pages[page_no] = bytearray(PAGE_SIZE)
        return page_no

    def delete_page(self, page_no: int) -> None:
        """Drop a page from the cache, discarding changes not yet flushed."""
        self._require_open()
        self._check_page_no(page_no)
        self._pages.pop(page_no, None)

    def flush(self) -> None:
        """Write every cached page to disk."""
        file = self._require_open()
        for page_no, page in sorted(self._pages.items()):
            file.seek(page_no * PAGE_SIZE)
            file.write(page)
        file.flush()

    def close(self) -> None:
        """Flush and close the file; closing twice is harmless."""
        if self._file is None:
            return
        self.flush()
        self._file.close()
        self._file = None
        self._pages.clear()