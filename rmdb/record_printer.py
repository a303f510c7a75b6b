"""Rendering of result tables into a bounded output buffer."""

from __future__ import annotations

from rmdb.defs import BUFFER_LENGTH

RECORD_COUNT_LENGTH = 40


class OutputBuffer:
    """A bounded text buffer that remembers when output had to be cut short.

    Room for the closing record count is always kept free.
    """

    def __init__(self, capacity: int = BUFFER_LENGTH) -> None:
        self.capacity = capacity
        self.ellipsis = False
        self._parts: list[str] = []
        self._size = 0

    def _fits(self, text: str) -> bool:
        return (
            not self.ellipsis
            and self._size + RECORD_COUNT_LENGTH + len(text.encode()) < self.capacity
        )

    def _append(self, text: str) -> None:
        self._parts.append(text)
        self._size += len(text.encode())

    def write(self, text: str) -> bool:
        """Append text if it fits; otherwise mark the output as truncated."""
        if self._fits(text):
            self._append(text)
            return True
        self.ellipsis = True
        return False

    def getvalue(self) -> str:
        """Return everything written so far."""
        return "".join(self._parts)

    def __len__(self) -> int:
        return self._size


class RecordPrinter:
    """Formats rows as a fixed-width text table."""

    COL_WIDTH = 16

    def __init__(self, num_cols: int) -> None:
        if num_cols <= 0:
            raise ValueError("a table needs at least one column")
        self.num_cols = num_cols

    def print_separator(self, out: OutputBuffer) -> None:
        for _ in range(self.num_cols):
            out.write("+" + "-" * (self.COL_WIDTH + 2))
        out.write("+\n")

    def print_record(self, rec_str: list[str], out: OutputBuffer) -> None:
        if len(rec_str) != self.num_cols:
            raise ValueError(f"expected {self.num_cols} columns, got {len(rec_str)}")
        for col in rec_str:
            if len(col) > self.COL_WIDTH:
                col = col[: self.COL_WIDTH - 3] + "..."
            out.write("| " + col.rjust(self.COL_WIDTH) + " ")
        if out._fits("|\n"):
            out._append("|\n")

    @staticmethod
    def print_record_count(num_rec: int, out: OutputBuffer) -> None:
        text = "... ...\n" if out.ellipsis else ""
        text += f"Total record(s): {num_rec}\n"
        out._append(text)