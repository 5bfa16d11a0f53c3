"""Google Sheets backed tables."""
from whatsapp_google_uploader.sheets.chat_store import (
    ChatGoogleInfo,
    ChatMetadataStore,
    ChatRecord,
    ChatType,
)
from whatsapp_google_uploader.sheets.column_index import (
    column_to_index,
    index_to_column,
    index_within_range,
)
from whatsapp_google_uploader.sheets.file_registry import FileRecord, UploadedFilesRegistry
from whatsapp_google_uploader.sheets.locator import find_or_create_spreadsheet

__all__ = [
    'ChatGoogleInfo',
    'ChatMetadataStore',
    'ChatRecord',
    'ChatType',
    'FileRecord',
    'UploadedFilesRegistry',
    'find_or_create_spreadsheet',
    'column_to_index',
    'index_to_column',
    'index_within_range',
]
