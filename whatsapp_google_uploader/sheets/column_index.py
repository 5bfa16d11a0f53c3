"""
Column letter arithmetic for Google Sheets A1 ranges.

Rows returned by the Sheets API are plain lists whose first element is the
first column of the *requested* range, not column A. Every field access on a
fetched row therefore goes through ``index_within_range`` with the range's
actual start column.
"""
import re
from dataclasses import dataclass
from typing import Optional

from whatsapp_google_uploader.exceptions import InvalidColumnLabel

_COLUMN_RE = re.compile(r'^[A-Z]+$')
_CELL_RE = re.compile(r'^([A-Za-z]*)(\d*)$')


def column_to_index(letters: str) -> int:
    """
    Convert a column label to its zero-based index.

    Labels are read as a base-26 numeral whose digits run from 1 (A) to
    26 (Z), so ``A`` is 0, ``Z`` is 25 and ``AA`` is 26.

    Args:
        letters: Column label, uppercase A-Z only

    Returns:
        Zero-based column index

    Raises:
        InvalidColumnLabel: If the label is empty or contains anything but A-Z
    """
    if not isinstance(letters, str) or not _COLUMN_RE.match(letters):
        raise InvalidColumnLabel(letters)

    index = 0
    for char in letters:
        index = index * 26 + (ord(char) - ord('A') + 1)
    return index - 1


def index_to_column(index: int) -> str:
    """Convert a zero-based column index back to its label."""
    if isinstance(index, bool) or not isinstance(index, int) or index < 0:
        raise InvalidColumnLabel(index)

    letters = []
    number = index + 1
    while number > 0:
        number, remainder = divmod(number - 1, 26)
        letters.append(chr(ord('A') + remainder))
    return ''.join(reversed(letters))


def index_within_range(start_column: str, target_column: str) -> int:
    """
    Offset of ``target_column`` inside a row fetched from a range that
    starts at ``start_column``.

    A negative result means the target lies left of the fetched range.
    """
    return column_to_index(target_column) - column_to_index(start_column)


@dataclass(frozen=True)
class A1Range:
    """Parsed A1 range. Missing row bounds are None (open ended)."""
    sheet: Optional[str]
    start_column: str
    start_row: Optional[int] = None
    end_column: Optional[str] = None
    end_row: Optional[int] = None


def quote_sheet(sheet: str) -> str:
    """Quote a sheet title for use in an A1 range."""
    return "'" + sheet.replace("'", "''") + "'"


def _split_sheet(range_name: str):
    if '!' not in range_name:
        return None, range_name
    sheet, _, cells = range_name.rpartition('!')
    if sheet.startswith("'") and sheet.endswith("'") and len(sheet) >= 2:
        sheet = sheet[1:-1].replace("''", "'")
    return sheet, cells


def _parse_cell(cell: str, range_name: str):
    match = _CELL_RE.match(cell)
    if not match or not (match.group(1) or match.group(2)):
        raise InvalidColumnLabel(range_name)
    letters, digits = match.groups()
    column = letters.upper() if letters else None
    if column is not None:
        # validates the label
        column_to_index(column)
    row = int(digits) if digits else None
    return column, row


def parse_a1_range(range_name: str) -> A1Range:
    """
    Parse a range such as ``'chats'!B1:AD40``, ``chats!A:Z``, ``chats!2:2``
    or ``chats!A1``.

    Row-only ranges (``2:2``) start at column A, which is how the Sheets API
    reports them.
    """
    sheet, cells = _split_sheet(range_name.strip())
    if not cells:
        raise InvalidColumnLabel(range_name)

    start, _, end = cells.partition(':')
    start_column, start_row = _parse_cell(start, range_name)
    end_column, end_row = (None, None)
    if end:
        end_column, end_row = _parse_cell(end, range_name)

    return A1Range(
        sheet=sheet,
        start_column=start_column or 'A',
        start_row=start_row,
        end_column=end_column,
        end_row=end_row,
    )


def format_a1(sheet: str, column: str, row: Optional[int] = None,
              end_column: Optional[str] = None,
              end_row: Optional[int] = None) -> str:
    """Build an A1 range string for ``sheet`` (title is always quoted)."""
    column_to_index(column)
    start = f"{column}{row if row is not None else ''}"
    if end_column is None and end_row is None:
        return f"{quote_sheet(sheet)}!{start}"
    if end_column is not None:
        column_to_index(end_column)
    end = f"{end_column or ''}{end_row if end_row is not None else ''}"
    return f"{quote_sheet(sheet)}!{start}:{end}"
