"""Upload session progress tracking."""
from whatsapp_google_uploader.progress.ledger import ProgressLedger
from whatsapp_google_uploader.progress.models import (
    ErrorRecord,
    FileResult,
    SessionProgress,
    SessionStatus,
    SessionSummary,
)
from whatsapp_google_uploader.progress.report_writer import SessionReportWriter

__all__ = [
    'ErrorRecord',
    'FileResult',
    'ProgressLedger',
    'SessionProgress',
    'SessionReportWriter',
    'SessionStatus',
    'SessionSummary',
]
