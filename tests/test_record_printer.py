import pytest

from rmdb.record_printer import OutputBuffer, RecordPrinter


def test_separator_single_column():
    out = OutputBuffer()
    RecordPrinter(1).print_separator(out)
    assert out.getvalue() == "+------------------+\n"


def test_record_lines_match_separator_width():
    out = OutputBuffer()
    printer = RecordPrinter(3)
    printer.print_separator(out)
    printer.print_record(["1", "abc", "2.5"], out)
    printer.print_separator(out)
    lines = out.getvalue().splitlines()
    assert len(lines) == 3
    assert len({len(line) for line in lines}) == 1
    assert lines[1].startswith("| ")
    assert lines[1].endswith("|")


def test_long_column_is_truncated():
    out = OutputBuffer()
    RecordPrinter(1).print_record(["abcdefghijklmnopqrst"], out)
    assert out.getvalue() == "| abcdefghijklm... |\n"


def test_short_column_is_right_aligned():
    out = OutputBuffer()
    RecordPrinter(1).print_record(["x"], out)
    cell = out.getvalue()[2:-3]
    assert cell.strip() == "x"
    assert cell.endswith("x")
    assert len(cell) == RecordPrinter.COL_WIDTH


def test_record_count_without_ellipsis():
    out = OutputBuffer()
    RecordPrinter.print_record_count(3, out)
    assert out.getvalue() == "Total record(s): " + "3" + "\n"
    assert not out.ellipsis


def test_overflow_sets_ellipsis_and_marks_count():
    out = OutputBuffer(capacity=100)
    printer = RecordPrinter(2)
    for _ in range(10):
        printer.print_record(["a", "b"], out)
    assert out.ellipsis
    written = len(out)
    assert written < 100
    RecordPrinter.print_record_count(10, out)
    assert out.getvalue().endswith("... ...\n" + "Total record(s): " + "10" + "\n")


def test_write_refuses_after_ellipsis():
    out = OutputBuffer(capacity=50)
    assert not out.write("y" * 20)
    assert out.ellipsis
    assert not out.write("z")
    assert out.getvalue() == ""


def test_wrong_column_count_raises():
    with pytest.raises(ValueError):
        RecordPrinter(2).print_record(["only one"], OutputBuffer())


def test_zero_columns_rejected():
    with pytest.raises(ValueError):
        RecordPrinter(0)