"""
Registry of uploaded files, used to skip files that were already sent.
"""
import logging
from dataclasses import dataclass
from typing import List, Optional

from whatsapp_google_uploader.sheets.table import SheetTable, TableSnapshot

logger = logging.getLogger(__name__)

FILE_HASH = 'File Hash'
FILE_NAME = 'File Name'
FILE_PATH = 'File Path'
FILE_SIZE = 'File Size'
UPLOAD_DATE = 'Upload Date'
GOOGLE_ID = 'Google ID'
MIME_TYPE = 'MIME Type'
CHAT_ID = 'Chat ID'

FILE_HEADERS = [
    FILE_HASH, FILE_NAME, FILE_PATH, FILE_SIZE,
    UPLOAD_DATE, GOOGLE_ID, MIME_TYPE, CHAT_ID,
]


@dataclass
class FileRecord:
    """An uploaded file."""
    file_hash: str
    file_name: str
    file_path: str
    file_size: int
    upload_date: str
    google_id: str
    mime_type: str
    chat_id: Optional[str] = None


class UploadedFilesRegistry:
    """Hash-keyed log of uploads kept in its own tab."""

    def __init__(self, service, spreadsheet_id: str, sheet: str = 'uploaded_files'):
        self.table = SheetTable(service, spreadsheet_id, sheet, FILE_HEADERS)

    def initialize(self) -> None:
        self.table.ensure()

    def is_file_uploaded(self, file_hash: str) -> bool:
        snapshot = self.table.read()
        return bool(snapshot.find_rows(FILE_HASH, file_hash))

    def save_uploaded_file(self, record: FileRecord) -> None:
        snapshot = self.table.read()
        self.table.append_records(snapshot, [{
            FILE_HASH: record.file_hash,
            FILE_NAME: record.file_name,
            FILE_PATH: record.file_path,
            FILE_SIZE: record.file_size,
            UPLOAD_DATE: record.upload_date,
            GOOGLE_ID: record.google_id,
            MIME_TYPE: record.mime_type,
            CHAT_ID: record.chat_id or '',
        }])
        logger.debug(f"Recorded upload of {record.file_name} ({record.file_hash})")

    def _record(self, snapshot: TableSnapshot, row) -> FileRecord:
        size = snapshot.value(row, FILE_SIZE)
        try:
            file_size = int(size) if size else 0
        except ValueError:
            file_size = 0
        return FileRecord(
            file_hash=snapshot.value(row, FILE_HASH) or '',
            file_name=snapshot.value(row, FILE_NAME) or '',
            file_path=snapshot.value(row, FILE_PATH) or '',
            file_size=file_size,
            upload_date=snapshot.value(row, UPLOAD_DATE) or '',
            google_id=snapshot.value(row, GOOGLE_ID) or '',
            mime_type=snapshot.value(row, MIME_TYPE) or '',
            chat_id=snapshot.value(row, CHAT_ID),
        )

    def get_uploaded_files(self, chat_id: Optional[str] = None) -> List[FileRecord]:
        """All uploads, or only those of ``chat_id``."""
        snapshot = self.table.read()
        hash_column = snapshot.column(FILE_HASH)
        records = [
            self._record(snapshot, row)
            for _, row in snapshot.iter_rows()
            if snapshot.cell(row, hash_column)
        ]
        if chat_id:
            return [r for r in records if r.chat_id == chat_id]
        return records

    def count_files(self) -> int:
        snapshot = self.table.read()
        hash_column = snapshot.column(FILE_HASH)
        return sum(1 for _, row in snapshot.iter_rows() if snapshot.cell(row, hash_column))
