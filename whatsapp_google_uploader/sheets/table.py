"""
Header-driven access to a single Google Sheets tab.

The tab is treated as a table: the first returned row is the header and each
following row is a record. Columns are always located by header label and
translated into row offsets with the start column the API reports for the
fetched range, so users may reorder, sort or insert columns and rows freely.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple

from whatsapp_google_uploader.exceptions import MalformedTable
from whatsapp_google_uploader.sheets.column_index import (
    column_to_index,
    format_a1,
    index_to_column,
    index_within_range,
    parse_a1_range,
    quote_sheet,
)

logger = logging.getLogger(__name__)


@dataclass
class TableSnapshot:
    """A single read of a tab: header positions plus data rows."""
    sheet: str
    start_column: str
    header_row: int
    columns: Dict[str, str] = field(default_factory=dict)
    rows: List[Tuple[int, List[Any]]] = field(default_factory=list)

    def has_column(self, label: str) -> bool:
        return label in self.columns

    def column(self, label: str) -> str:
        """Absolute column letter for ``label``; MalformedTable if missing."""
        try:
            return self.columns[label]
        except KeyError:
            raise MalformedTable(self.sheet, label) from None

    def cell(self, row: Sequence[Any], column: str) -> Optional[str]:
        """Value of ``column`` in a fetched row, or None for an empty cell."""
        offset = index_within_range(self.start_column, column)
        if offset < 0 or offset >= len(row):
            return None
        value = row[offset]
        if value is None or value == '':
            return None
        return str(value)

    def value(self, row: Sequence[Any], label: str) -> Optional[str]:
        return self.cell(row, self.column(label))

    def iter_rows(self) -> Iterator[Tuple[int, List[Any]]]:
        return iter(self.rows)

    def find_rows(self, label: str, key: str) -> List[int]:
        """Sheet row numbers whose ``label`` cell equals ``key`` exactly."""
        column = self.column(label)
        return [
            row_number for row_number, row in self.rows
            if self.cell(row, column) == key
        ]


class SheetTable:
    """Reads and writes one tab of a spreadsheet through the Sheets v4 API."""

    def __init__(self, service, spreadsheet_id: str, sheet: str,
                 headers: Sequence[str]):
        """
        Args:
            service: Sheets API resource from ``build('sheets', 'v4', ...)``
            spreadsheet_id: Spreadsheet holding the tab
            sheet: Tab title
            headers: Header labels written when the tab has no header row
        """
        self.service = service
        self.spreadsheet_id = spreadsheet_id
        self.sheet = sheet
        self.headers = list(headers)

    @property
    def _values(self):
        return self.service.spreadsheets().values()

    def ensure(self) -> bool:
        """
        Make sure the tab exists and carries a header row.

        Existing data is never cleared. Returns True when the header row
        was written by this call.
        """
        metadata = self.service.spreadsheets().get(
            spreadsheetId=self.spreadsheet_id,
            fields='sheets.properties.title'
        ).execute()
        titles = [
            sheet.get('properties', {}).get('title')
            for sheet in metadata.get('sheets', [])
        ]

        if self.sheet not in titles:
            logger.info(f"Adding sheet '{self.sheet}' to spreadsheet {self.spreadsheet_id}")
            self.service.spreadsheets().batchUpdate(
                spreadsheetId=self.spreadsheet_id,
                body={'requests': [{
                    'addSheet': {'properties': {'title': self.sheet}}
                }]}
            ).execute()

        result = self._values.get(
            spreadsheetId=self.spreadsheet_id,
            range=f"{quote_sheet(self.sheet)}!1:1"
        ).execute()
        header = [cell for row in result.get('values', []) for cell in row]

        if any(str(cell).strip() for cell in header):
            missing = [label for label in self.headers if label not in header]
            if missing:
                logger.warning(
                    f"Sheet '{self.sheet}' header is missing columns: {', '.join(missing)}"
                )
            return False

        self._values.update(
            spreadsheetId=self.spreadsheet_id,
            range=format_a1(self.sheet, 'A', 1),
            valueInputOption='RAW',
            body={'values': [self.headers]}
        ).execute()
        logger.info(f"Wrote header row to sheet '{self.sheet}' ({len(self.headers)} columns)")
        return True

    def read(self) -> TableSnapshot:
        """Fetch the whole tab in one request and resolve its header."""
        # raw numbers, so display formatting such as "1,234" never reaches parsing
        result = self._values.get(
            spreadsheetId=self.spreadsheet_id,
            range=quote_sheet(self.sheet),
            valueRenderOption='UNFORMATTED_VALUE',
            dateTimeRenderOption='FORMATTED_STRING'
        ).execute()
        values = result.get('values', [])

        if result.get('range'):
            fetched = parse_a1_range(result['range'])
            start_column = fetched.start_column
            first_row = fetched.start_row or 1
        else:
            start_column, first_row = 'A', 1

        snapshot = TableSnapshot(
            sheet=self.sheet,
            start_column=start_column,
            header_row=first_row,
        )
        if not values:
            return snapshot

        start_index = column_to_index(start_column)
        for offset, label in enumerate(values[0]):
            label = str(label).strip()
            if label and label not in snapshot.columns:
                snapshot.columns[label] = index_to_column(start_index + offset)

        snapshot.rows = [
            (first_row + position, row)
            for position, row in enumerate(values[1:], start=1)
        ]
        logger.debug(
            f"Read {len(snapshot.rows)} rows from '{self.sheet}' "
            f"(range starts at column {start_column})"
        )
        return snapshot

    def write_cells(self, row_number: int, cells: Mapping[str, Any]) -> None:
        """
        Write ``{column_letter: value}`` into one row with a single request.

        Only the listed cells are touched.
        """
        data = [
            {'range': format_a1(self.sheet, column, row_number), 'values': [[value]]}
            for column, value in cells.items()
        ]
        if not data:
            return
        self._values.batchUpdate(
            spreadsheetId=self.spreadsheet_id,
            body={'valueInputOption': 'RAW', 'data': data}
        ).execute()

    def append_records(self, snapshot: TableSnapshot,
                       records: Sequence[Mapping[str, Any]]) -> None:
        """
        Append ``records`` (``{header_label: value}``) as new rows.

        Rows are laid out against the header positions in ``snapshot``;
        labels not present in the header are skipped.
        """
        if not records:
            return

        offsets = {
            label: index_within_range(snapshot.start_column, column)
            for label, column in snapshot.columns.items()
        }
        rows = []
        for record in records:
            known = {offsets[label]: value for label, value in record.items()
                     if label in offsets}
            row = [''] * (max(known) + 1 if known else 0)
            for offset, value in known.items():
                row[offset] = '' if value is None else value
            rows.append(row)

        self._values.append(
            spreadsheetId=self.spreadsheet_id,
            range=format_a1(self.sheet, snapshot.start_column, snapshot.header_row),
            valueInputOption='RAW',
            insertDataOption='INSERT_ROWS',
            body={'values': rows}
        ).execute()
        logger.debug(f"Appended {len(rows)} rows to '{self.sheet}'")
