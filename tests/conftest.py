"""
Pytest configuration and shared fixtures.
"""
from datetime import datetime, timedelta
from pathlib import Path
from typing import Dict, List, Optional
from unittest.mock import MagicMock

import pytest
import yaml

from whatsapp_google_uploader.sheets.chat_store import CHAT_HEADERS, CHAT_JID, CHAT_NAME
from whatsapp_google_uploader.sheets.column_index import (
    column_to_index,
    index_to_column,
    parse_a1_range,
    quote_sheet,
)

SPREADSHEET_ID = 'test_spreadsheet_id'
CREATED_SPREADSHEET_ID = 'created_spreadsheet_id'


class _Request:
    """Mimics a googleapiclient HttpRequest."""

    def __init__(self, fn):
        self._fn = fn

    def execute(self):
        return self._fn()


class FakeSheetsService:
    """
    In-memory stand-in for ``build('sheets', 'v4')``.

    Supports the calls the sheet tables make: spreadsheets().create/get/batchUpdate
    and values().get/update/batchUpdate/append. Every call is recorded in
    ``calls`` as ``(method, kwargs)``.
    """

    def __init__(self):
        self.grids: Dict[str, List[List]] = {}
        self.calls = []

    def add_sheet(self, title: str, rows: Optional[List[List]] = None) -> None:
        self.grids[title] = [list(row) for row in rows or []]

    def rows(self, title: str) -> List[List]:
        """Grid of ``title`` trimmed the way the API returns it."""
        trimmed = []
        for row in self.grids[title]:
            row = list(row)
            while row and row[-1] in ('', None):
                row.pop()
            trimmed.append(row)
        while trimmed and not trimmed[-1]:
            trimmed.pop()
        return trimmed

    def write_calls(self):
        return [c for c in self.calls
                if c[0] in ('values.update', 'values.batchUpdate', 'values.append', 'batchUpdate')]

    def spreadsheets(self):
        return _Spreadsheets(self)

    # grid helpers
    def _grid(self, range_name: str):
        title = range_name.split('!')[0] if '!' in range_name else range_name
        if title.startswith("'"):
            title = title[1:-1].replace("''", "'")
        if title not in self.grids:
            raise ValueError(f"Unable to parse range: {range_name}")
        return title, self.grids[title]

    def _write(self, range_name: str, values: List[List]) -> None:
        _, grid = self._grid(range_name)
        target = parse_a1_range(range_name)
        first_row = target.start_row or 1
        first_col = column_to_index(target.start_column)
        for r, row_values in enumerate(values):
            row_index = first_row - 1 + r
            while len(grid) <= row_index:
                grid.append([])
            row = grid[row_index]
            for c, value in enumerate(row_values):
                col_index = first_col + c
                while len(row) <= col_index:
                    row.append('')
                row[col_index] = value


class _Spreadsheets:
    def __init__(self, fake: FakeSheetsService):
        self.fake = fake

    def create(self, body, fields=None):
        self.fake.calls.append(('create', {'body': body}))

        def run():
            for sheet in body.get('sheets', []):
                self.fake.add_sheet(sheet['properties']['title'])
            return {'spreadsheetId': CREATED_SPREADSHEET_ID}
        return _Request(run)

    def get(self, spreadsheetId, fields=None):
        self.fake.calls.append(('get', {'spreadsheetId': spreadsheetId}))
        return _Request(lambda: {'sheets': [
            {'properties': {'title': title, 'sheetId': index}}
            for index, title in enumerate(self.fake.grids)
        ]})

    def batchUpdate(self, spreadsheetId, body):
        self.fake.calls.append(('batchUpdate', {'spreadsheetId': spreadsheetId, 'body': body}))

        def run():
            for request in body['requests']:
                if 'addSheet' in request:
                    self.fake.add_sheet(request['addSheet']['properties']['title'])
            return {'replies': [{} for _ in body['requests']]}
        return _Request(run)

    def values(self):
        return _Values(self.fake)


class _Values:
    def __init__(self, fake: FakeSheetsService):
        self.fake = fake

    def get(self, spreadsheetId, range, **options):
        self.fake.calls.append(('values.get', dict(options, range=range)))

        def run():
            title, _ = self.fake._grid(range)
            rows = self.fake.rows(title)
            if '!' in range:
                target = parse_a1_range(range)
                first = (target.start_row or 1) - 1
                last = target.end_row or len(rows)
                rows = rows[first:last]
            if not rows:
                return {'range': f"{quote_sheet(title)}!A1:Z1000", 'majorDimension': 'ROWS'}
            width = max(len(row) for row in rows) or 1
            return {
                'range': f"{quote_sheet(title)}!A1:{index_to_column(width - 1)}{len(rows)}",
                'majorDimension': 'ROWS',
                'values': rows,
            }
        return _Request(run)

    def update(self, spreadsheetId, range, valueInputOption, body):
        self.fake.calls.append(('values.update', {'range': range, 'body': body}))

        def run():
            self.fake._write(range, body['values'])
            return {'updatedRange': range}
        return _Request(run)

    def batchUpdate(self, spreadsheetId, body):
        self.fake.calls.append(('values.batchUpdate', {'body': body}))

        def run():
            for item in body['data']:
                self.fake._write(item['range'], item['values'])
            return {'totalUpdatedCells': len(body['data'])}
        return _Request(run)

    def append(self, spreadsheetId, range, valueInputOption, insertDataOption, body):
        self.fake.calls.append(('values.append', {'range': range, 'body': body}))

        def run():
            title, _ = self.fake._grid(range)
            target = parse_a1_range(range)
            next_row = len(self.fake.rows(title)) + 1
            start = f"{quote_sheet(title)}!{target.start_column}{next_row}"
            self.fake._write(start, body['values'])
            return {'updates': {'updatedRows': len(body['values'])}}
        return _Request(run)


@pytest.fixture
def sheets_service():
    """An empty fake Sheets service."""
    return FakeSheetsService()


@pytest.fixture
def people_service():
    """People API mock with one contact for Maria's number."""
    service = MagicMock()
    service.people.return_value.connections.return_value.list.return_value.execute.return_value = {
        'connections': [{
            'names': [{'displayName': 'Maria Silva'}],
            'phoneNumbers': [{'value': '+55 11 99999-9999'}],
        }]
    }
    return service


@pytest.fixture
def chat_row():
    """Factory building a chat table row aligned with the default headers."""
    def make(jid: str, name: str = 'Chat', **labels) -> List:
        values = {CHAT_JID: jid, CHAT_NAME: name}
        values.update(labels)
        return [values.get(header, '') for header in CHAT_HEADERS]
    return make


@pytest.fixture
def chat_sheet(sheets_service, chat_row):
    """Fake service with a populated 'chats' tab."""
    sheets_service.add_sheet('chats', [
        CHAT_HEADERS,
        chat_row('5511999999999@s.whatsapp.net', 'Maria'),
        chat_row('5511888888888@s.whatsapp.net', 'João'),
        chat_row('120363025246125486@g.us', 'Família'),
    ])
    return sheets_service


class FakeClock:
    """Deterministic clock advanced by hand."""

    def __init__(self, start: datetime = datetime(2024, 1, 1, 12, 0, 0)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sample_config(tmp_path) -> Dict:
    """Fixture providing a sample configuration dictionary."""
    return {
        'google': {
            'credentials_file': str(tmp_path / 'credentials.json'),
            'token_file': str(tmp_path / 'token.json'),
        },
        'sheets': {
            'chat_spreadsheet_id': SPREADSHEET_ID,
            'chat_sheet': 'chats',
        },
        'upload': {
            'batch_size': 10,
            'state_dir': str(tmp_path / 'state'),
            'max_media_age_days': 30,
        },
        'logging': {
            'level': 'INFO',
            'file': str(tmp_path / 'uploader.log'),
        },
    }


@pytest.fixture
def config_file(tmp_path, sample_config) -> Path:
    """Create a temporary config.yaml file."""
    config_path = tmp_path / 'config.yaml'
    with open(config_path, 'w') as f:
        yaml.dump(sample_config, f)
    return config_path
