"""
Line and field splitting for the comma-delimited uploads
(bank statements and transaction imports).
"""

import csv


def split_lines(text: str) -> list[str]:
    """Split on \\n or \\r\\n and drop blank lines."""
    return [line for line in text.replace("\r\n", "\n").split("\n") if line.strip()]


def split_csv_line(line: str) -> list[str]:
    """
    Split one line on commas, honouring double-quoted fields.

    A quoted field may contain commas; a doubled quote inside it is a
    literal quote. Fields are whitespace-stripped.
    """
    rows = list(csv.reader([line], skipinitialspace=True))
    if not rows:
        return []
    return [field.strip() for field in rows[0]]
