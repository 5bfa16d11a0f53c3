"""
Upload tracker: wires the chat table, progress ledger and session reports
together for an upload run.
"""
import logging
import re
from dataclasses import dataclass
from typing import Dict, Iterable, Optional

from tqdm import tqdm

from whatsapp_google_uploader.config import UploaderConfig
from whatsapp_google_uploader.contacts import ContactsCache
from whatsapp_google_uploader.google_auth import GoogleServices, build_services, get_credentials
from whatsapp_google_uploader.progress.ledger import ProgressLedger
from whatsapp_google_uploader.progress.models import FileResult, SessionStatus, SessionSummary
from whatsapp_google_uploader.progress.report_writer import SessionReportWriter
from whatsapp_google_uploader.sheets.chat_store import ChatGoogleInfo, ChatMetadataStore, ChatType
from whatsapp_google_uploader.sheets.file_registry import UploadedFilesRegistry
from whatsapp_google_uploader.sheets.locator import find_or_create_spreadsheet
from whatsapp_google_uploader.utils.logging_config import configure_logging

logger = logging.getLogger(__name__)


@dataclass
class ChatRun:
    """State handed to the uploader at the start of a chat run."""
    session_id: str
    jid: str
    google_info: ChatGoogleInfo
    newly_registered: bool


class UploadTracker:
    """Tracks upload runs for chats against the configured spreadsheets."""

    def __init__(self, config: UploaderConfig, services: Optional[GoogleServices] = None,
                 show_progress: bool = True):
        """
        Initialize the tracker.

        Args:
            config: Loaded configuration
            services: Prebuilt API services; built from the OAuth token if None
            show_progress: Show a progress bar per running session
        """
        self.config = config
        if services is None:
            creds = get_credentials(config.google.credentials_file, config.google.token_file)
            services = build_services(creds)
        self.services = services
        self.show_progress = show_progress

        sheets = config.sheets
        chat_spreadsheet_id = sheets.chat_spreadsheet_id or find_or_create_spreadsheet(
            services.drive, services.sheets,
            title=sheets.chat_spreadsheet_name,
            sheet=sheets.chat_sheet,
            folder_name=sheets.drive_folder_name,
        )
        progress_spreadsheet_id = sheets.progress_spreadsheet_id or chat_spreadsheet_id

        self.chat_store = ChatMetadataStore(
            services.sheets,
            chat_spreadsheet_id,
            sheet=sheets.chat_sheet,
            max_media_age_days=config.upload.max_media_age_days,
        )
        self.file_registry = UploadedFilesRegistry(
            services.sheets,
            progress_spreadsheet_id,
            sheet=sheets.files_sheet,
        )
        self.report_writer = SessionReportWriter(
            services.sheets, progress_spreadsheet_id
        )
        self.contacts = ContactsCache()
        self.ledger = ProgressLedger(
            state_dir=config.upload.state_path,
            batch_size=config.upload.batch_size,
        )
        self._progress_bars: Dict[str, tqdm] = {}

    @classmethod
    def from_yaml(cls, config_path: str, setup_logs: bool = True, **kwargs) -> 'UploadTracker':
        """Load the configuration file, apply its logging section and build a tracker."""
        config = UploaderConfig.from_yaml(config_path)
        if setup_logs:
            configure_logging(config.logging)
        return cls(config, **kwargs)

    def initialize(self) -> None:
        """Ensure every backing tab exists and load contacts. Safe to call on every run."""
        self.chat_store.initialize()
        self.file_registry.initialize()
        self.report_writer.initialize()
        self.contacts.load(self.services.people)
        logger.info(f"Chat table: {self.chat_store.get_spreadsheet_url()}")

    def begin_chat(self, jid: str, chat_name: str, total_files: int) -> ChatRun:
        """
        Register the chat if needed and open a session for it.

        Individual chats named only by their phone number take the contact
        name from Google Contacts when one is known.
        """
        chat_name = self._resolve_chat_name(jid, chat_name)
        newly_registered = self.chat_store.register_chat(jid, chat_name)
        google_info = self.chat_store.get_chat_info(jid) or ChatGoogleInfo()
        session_id = self.ledger.start_session(jid, chat_name, total_files)

        if self.show_progress:
            self._progress_bars[session_id] = tqdm(
                total=total_files, desc=chat_name, unit='file'
            )
        return ChatRun(
            session_id=session_id,
            jid=jid,
            google_info=google_info,
            newly_registered=newly_registered,
        )

    def _resolve_chat_name(self, jid: str, chat_name: str) -> str:
        if ChatType.from_jid(jid) is ChatType.GROUP:
            return chat_name
        phone = jid.split('@')[0]
        if chat_name and re.sub(r'\D', '', chat_name) != phone:
            return chat_name
        return self.contacts.get_contact_name(jid) or chat_name or phone

    def record_batch(self, session_id: str, batch_index: int,
                     results: Iterable[FileResult]) -> None:
        results = list(results)
        self.ledger.record_batch(session_id, batch_index, results)
        bar = self._progress_bars.get(session_id)
        if bar is not None:
            bar.update(len(results))

    def finish_chat(self, session_id: str,
                    final_status: SessionStatus = SessionStatus.COMPLETED) -> SessionSummary:
        """
        Close the session, fold its totals into the chat row and write the
        session report rows.
        """
        bar = self._progress_bars.pop(session_id, None)
        if bar is not None:
            bar.close()

        self.ledger.finish_session(session_id, final_status)
        summary = self.ledger.summarize(session_id)
        self.chat_store.update_progress_summary(summary.chat_id, summary)
        self.report_writer.write_summary(summary)
        self.report_writer.write_errors(self.ledger.get_session(session_id))
        return summary

    def get_statistics(self) -> Dict[str, int]:
        """Number of recorded uploads and of chats in the chat table."""
        return {
            'total_files': self.file_registry.count_files(),
            'total_chats': self.chat_store.count_chats(),
        }
