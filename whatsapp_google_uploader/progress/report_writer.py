"""
Persists session summaries and error records to a progress spreadsheet.
"""
import logging

from whatsapp_google_uploader.progress.models import SessionProgress, SessionSummary
from whatsapp_google_uploader.sheets.table import SheetTable

logger = logging.getLogger(__name__)

SESSIONS_SHEET = 'upload_sessions'
ERRORS_SHEET = 'upload_errors'

SESSION_HEADERS = [
    'Session ID', 'Chat ID', 'Chat Name', 'Status', 'Start Time', 'End Time',
    'Duration (s)', 'Total Files', 'Processed Files', 'Success', 'Errors',
    'Duplicates', 'Total Size (bytes)', 'Average Speed (bytes/s)',
]
ERROR_HEADERS = [
    'Session ID', 'Error ID', 'File Path', 'Error Type', 'Message',
    'Retry Count', 'Timestamp',
]


def _iso(value):
    return value.isoformat() if value else ''


class SessionReportWriter:
    """Appends one row per session summary and one row per error record."""

    def __init__(self, service, spreadsheet_id: str,
                 sessions_sheet: str = SESSIONS_SHEET,
                 errors_sheet: str = ERRORS_SHEET):
        self.sessions = SheetTable(service, spreadsheet_id, sessions_sheet, SESSION_HEADERS)
        self.errors = SheetTable(service, spreadsheet_id, errors_sheet, ERROR_HEADERS)

    def initialize(self) -> None:
        self.sessions.ensure()
        self.errors.ensure()

    def write_summary(self, summary: SessionSummary) -> None:
        snapshot = self.sessions.read()
        self.sessions.append_records(snapshot, [{
            'Session ID': summary.session_id,
            'Chat ID': summary.chat_id,
            'Chat Name': summary.chat_name,
            'Status': summary.status.value,
            'Start Time': _iso(summary.start_time),
            'End Time': _iso(summary.end_time),
            'Duration (s)': round(summary.duration, 3),
            'Total Files': summary.total_files,
            'Processed Files': summary.processed_files,
            'Success': summary.success_count,
            'Errors': summary.error_count,
            'Duplicates': summary.duplicate_count,
            'Total Size (bytes)': summary.total_size,
            'Average Speed (bytes/s)': round(summary.average_speed, 2),
        }])
        logger.info(f"Wrote summary of session {summary.session_id} to '{self.sessions.sheet}'")

    def write_errors(self, session: SessionProgress) -> int:
        """Append the session's error records; returns how many were written."""
        if not session.errors:
            return 0
        snapshot = self.errors.read()
        self.errors.append_records(snapshot, [
            {
                'Session ID': error.session_id,
                'Error ID': error.id,
                'File Path': error.file_path,
                'Error Type': error.error_type,
                'Message': error.message,
                'Retry Count': error.retry_count,
                'Timestamp': _iso(error.timestamp),
            }
            for error in session.errors
        ])
        logger.info(f"Wrote {len(session.errors)} error records of session {session.session_id}")
        return len(session.errors)
