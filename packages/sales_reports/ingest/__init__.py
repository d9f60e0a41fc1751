"""Row sources backed by exported files."""

from .utils import CsvRowSource, load_rows_from_csv

__all__ = ["CsvRowSource", "load_rows_from_csv"]
