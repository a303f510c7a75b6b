"""Creation, opening, closing and removal of index files."""

from __future__ import annotations

import os
from collections.abc import Sequence
from typing import Any

from rmdb.defs import PAGE_SIZE, ColType
from rmdb.errors import DbFileNotFoundError, InternalError, InvalidColLengthError
from rmdb.ix_defs import (
    IX_FILE_HDR_PAGE,
    IX_INIT_NUM_PAGES,
    IX_INIT_ROOT_PAGE,
    IX_LEAF_HEADER_PAGE,
    IX_MAX_COL_LEN,
    IX_NO_PAGE,
    RID_SIZE,
    IxFileHdr,
    IxPageHdr,
)
from rmdb.ix_index_handle import IxIndexHandle
from rmdb.ix_storage import PageFile


def _col_name(col: Any) -> str:
    return col if isinstance(col, str) else col.name


def _empty_leaf_page(prev_leaf: int, next_leaf: int) -> bytes:
    hdr = IxPageHdr(
        next_free_page_no=IX_NO_PAGE,
        parent=IX_NO_PAGE,
        num_key=0,
        is_leaf=True,
        prev_leaf=prev_leaf,
        next_leaf=next_leaf,
    )
    return hdr.pack().ljust(PAGE_SIZE, b"\0")


class IxManager:
    """Manages the index files of tables kept in one directory.

    Index columns are given either as names or as column descriptions with
    ``name``, ``type`` and ``len`` attributes; creating an index needs the
    latter.
    """

    def __init__(self, directory: "str | os.PathLike[str]" = ".") -> None:
        self.directory = os.fspath(directory)

    def get_index_name(self, filename: str, index_cols: Sequence[Any]) -> str:
        """Name of the index file of a table over the given columns."""
        return filename + "".join("_" + _col_name(c) for c in index_cols) + ".idx"

    def _path(self, filename: str, index_cols: Sequence[Any]) -> str:
        return os.path.join(self.directory, self.get_index_name(filename, index_cols))

    def exists(self, filename: str, index_cols: Sequence[Any]) -> bool:
        return os.path.isfile(self._path(filename, index_cols))

    def create_index(self, filename: str, index_cols: Sequence[Any]) -> None:
        """Create an empty index file over the given columns."""
        col_types = [ColType(c.type) for c in index_cols]
        col_lens = [int(c.len) for c in index_cols]
        col_tot_len = sum(col_lens)
        if col_tot_len > IX_MAX_COL_LEN:
            raise InvalidColLengthError(col_tot_len)
        # One slot is kept spare so a node may overflow by one before splitting.
        btree_order = (PAGE_SIZE - IxPageHdr.SIZE) // (col_tot_len + RID_SIZE) - 1
        if btree_order <= 2:
            raise InternalError(f"B+ tree order {btree_order} is too small")

        fhdr = IxFileHdr(
            first_free_page_no=IX_NO_PAGE,
            num_pages=IX_INIT_NUM_PAGES,
            root_page=IX_NO_PAGE,
            col_types=col_types,
            col_lens=col_lens,
            col_tot_len=col_tot_len,
            btree_order=btree_order,
            keys_size=(btree_order + 1) * col_tot_len,
            first_leaf=IX_INIT_ROOT_PAGE,
            last_leaf=IX_INIT_ROOT_PAGE,
        )
        fhdr.update_tot_len()

        with PageFile(self._path(filename, index_cols), create=True) as page_file:
            page_file.write_page(IX_FILE_HDR_PAGE, fhdr.serialize())
            page_file.write_page(
                IX_LEAF_HEADER_PAGE, _empty_leaf_page(IX_INIT_ROOT_PAGE, IX_INIT_ROOT_PAGE)
            )
            page_file.write_page(
                IX_INIT_ROOT_PAGE, _empty_leaf_page(IX_LEAF_HEADER_PAGE, IX_LEAF_HEADER_PAGE)
            )

    def destroy_index(self, filename: str, index_cols: Sequence[Any]) -> None:
        """Remove an index file."""
        path = self._path(filename, index_cols)
        try:
            os.remove(path)
        except FileNotFoundError:
            raise DbFileNotFoundError(path) from None

    def open_index(self, filename: str, index_cols: Sequence[Any]) -> IxIndexHandle:
        """Open an existing index file and return a handle on its tree."""
        return IxIndexHandle(PageFile(self._path(filename, index_cols)))

    def close_index(self, handle: IxIndexHandle) -> None:
        """Write the header of an index back, flush its pages and close it."""
        page_file = handle.page_file
        page_file.write_page(IX_FILE_HDR_PAGE, handle.file_hdr.serialize())
        page_file.close()