"""Values, errors, result-table printing and a disk-backed B+ tree index."""

__version__ = "0.1.0"