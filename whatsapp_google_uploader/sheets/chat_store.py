"""
Chat metadata table stored in Google Sheets.

One row per WhatsApp chat, keyed by JID. Users are expected to sort, filter
and reorder the sheet by hand, so nothing here depends on row or column
position: every call re-reads the tab, resolves columns from the header row
and scans for the JID.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from whatsapp_google_uploader.exceptions import ChatNotFound
from whatsapp_google_uploader.progress.models import SessionStatus, SessionSummary
from whatsapp_google_uploader.sheets.table import SheetTable, TableSnapshot

logger = logging.getLogger(__name__)


class ChatType(Enum):
    """Kind of WhatsApp conversation."""
    INDIVIDUAL = "individual"
    GROUP = "group"

    @classmethod
    def from_jid(cls, jid: str) -> 'ChatType':
        return cls.GROUP if jid.endswith('@g.us') else cls.INDIVIDUAL


# Header labels of the chat table, in the order a new sheet is laid out.
CHAT_NAME = 'Nome do Chat'
CHAT_JID = 'ID WhatsApp (JID)'
CHAT_TYPE = 'Tipo (Individual/Grupo)'
LAST_SYNC_DATE = 'Última Sincronização'
LAST_UPLOADED_FILE = 'Último Arquivo Enviado'
SYNCED_FILES_COUNT = 'Arquivos Sincronizados'
FAILED_UPLOADS_COUNT = 'Falhas de Upload'
UPLOAD_STATUS = 'Status de Upload'
UPLOAD_PROGRESS = 'Progresso (%)'
ALBUM_ID = 'Álbum Google Photos'
ALBUM_LINK = 'Link do Álbum'
FOLDER_ID = 'Pasta Google Drive'
FOLDER_LINK = 'Link da Pasta'
SYNC_ENABLED = 'Sincronização Ativa'
MAX_MEDIA_AGE_DAYS = 'Retenção (dias)'

CHAT_HEADERS = [
    CHAT_NAME,
    CHAT_JID,
    CHAT_TYPE,
    'Data do Backup',
    'Total de Mensagens',
    'Primeira Mensagem',
    'Última Mensagem',
    'Data de Criação',
    'Total de Mídias',
    'Tamanho Total (MB)',
    'Qtd Fotos',
    'Tamanho Total Fotos (MB)',
    'Qtd Vídeos',
    'Tamanho Total Vídeos (MB)',
    'Qtd Áudios',
    'Tamanho Total Áudios (MB)',
    'Qtd Documentos',
    'Tamanho Total Documentos (MB)',
    'Última Verificação',
    LAST_SYNC_DATE,
    LAST_UPLOADED_FILE,
    SYNCED_FILES_COUNT,
    FAILED_UPLOADS_COUNT,
    UPLOAD_STATUS,
    UPLOAD_PROGRESS,
    'Tentativas de Upload',
    ALBUM_ID,
    ALBUM_LINK,
    FOLDER_ID,
    FOLDER_LINK,
    SYNC_ENABLED,
    MAX_MEDIA_AGE_DAYS,
    'Categoria',
    'Arquivado',
    'Observações',
]

PENDING_STATUS_LABEL = 'Pendente'
STATUS_LABELS = {
    SessionStatus.RUNNING: 'Em Progresso',
    SessionStatus.COMPLETED: 'Completo',
    SessionStatus.ERROR: 'Erro',
    SessionStatus.INTERRUPTED: 'Interrompido',
}


@dataclass
class ChatGoogleInfo:
    """Google resources associated with a chat."""
    album_id: Optional[str] = None
    album_link: Optional[str] = None
    folder_id: Optional[str] = None
    folder_link: Optional[str] = None


@dataclass
class ChatRecord:
    """A chat row as seen by this store."""
    jid: str
    chat_name: Optional[str] = None
    chat_type: Optional[ChatType] = None
    album_id: Optional[str] = None
    album_link: Optional[str] = None
    folder_id: Optional[str] = None
    folder_link: Optional[str] = None
    last_sync_date: Optional[str] = None
    last_uploaded_file: Optional[str] = None
    synced_files_count: int = 0
    failed_uploads_count: int = 0
    upload_status: Optional[str] = None

    @property
    def google_info(self) -> ChatGoogleInfo:
        return ChatGoogleInfo(
            album_id=self.album_id,
            album_link=self.album_link,
            folder_id=self.folder_id,
            folder_link=self.folder_link,
        )


def _to_int(value: Optional[str]) -> int:
    try:
        return int(float(value)) if value else 0
    except ValueError:
        return 0


class ChatMetadataStore:
    """
    JID-keyed association table between chats and Google resources.

    Rows are created by ``register_chat``; the update methods never create
    rows and raise ``ChatNotFound`` for unknown JIDs.
    """

    def __init__(self, service, spreadsheet_id: str, sheet: str = 'chats',
                 max_media_age_days: int = 90):
        """
        Args:
            service: Sheets API resource
            spreadsheet_id: Spreadsheet holding the chat table
            sheet: Tab title of the chat table
            max_media_age_days: Retention written for newly registered chats
        """
        self.spreadsheet_id = spreadsheet_id
        self.max_media_age_days = max_media_age_days
        self.table = SheetTable(service, spreadsheet_id, sheet, CHAT_HEADERS)

    def initialize(self) -> None:
        """Ensure the chat tab and its header row exist. Safe on every run."""
        self.table.ensure()

    def get_spreadsheet_url(self) -> str:
        return f"https://docs.google.com/spreadsheets/d/{self.spreadsheet_id}/edit"

    def _locate(self, snapshot: TableSnapshot, jid: str) -> Optional[int]:
        """Row number of the first row whose JID cell equals ``jid``."""
        matches = snapshot.find_rows(CHAT_JID, jid)
        if not matches:
            return None
        if len(matches) > 1:
            logger.warning(
                f"JID {jid} appears in {len(matches)} rows of '{snapshot.sheet}' "
                f"(rows {', '.join(str(m) for m in matches)}); using row {matches[0]}"
            )
        return matches[0]

    def _row(self, snapshot: TableSnapshot, row_number: int) -> List:
        for number, row in snapshot.rows:
            if number == row_number:
                return row
        return []

    def _optional(self, snapshot: TableSnapshot, row, label: str) -> Optional[str]:
        if not snapshot.has_column(label):
            return None
        return snapshot.value(row, label)

    def _record(self, snapshot: TableSnapshot, row) -> ChatRecord:
        chat_type = self._optional(snapshot, row, CHAT_TYPE)
        try:
            parsed_type = ChatType(chat_type.lower()) if chat_type else None
        except ValueError:
            parsed_type = None
        return ChatRecord(
            jid=snapshot.value(row, CHAT_JID),
            chat_name=self._optional(snapshot, row, CHAT_NAME),
            chat_type=parsed_type,
            album_id=self._optional(snapshot, row, ALBUM_ID),
            album_link=self._optional(snapshot, row, ALBUM_LINK),
            folder_id=self._optional(snapshot, row, FOLDER_ID),
            folder_link=self._optional(snapshot, row, FOLDER_LINK),
            last_sync_date=self._optional(snapshot, row, LAST_SYNC_DATE),
            last_uploaded_file=self._optional(snapshot, row, LAST_UPLOADED_FILE),
            synced_files_count=_to_int(self._optional(snapshot, row, SYNCED_FILES_COUNT)),
            failed_uploads_count=_to_int(self._optional(snapshot, row, FAILED_UPLOADS_COUNT)),
            upload_status=self._optional(snapshot, row, UPLOAD_STATUS),
        )

    def get_chat(self, jid: str) -> Optional[ChatRecord]:
        """Full record for ``jid``, or None when the chat is not in the table."""
        snapshot = self.table.read()
        row_number = self._locate(snapshot, jid)
        if row_number is None:
            logger.debug(f"Chat {jid} not found in '{snapshot.sheet}'")
            return None
        return self._record(snapshot, self._row(snapshot, row_number))

    def get_chat_info(self, jid: str) -> Optional[ChatGoogleInfo]:
        """
        Album and folder associations for ``jid``.

        Returns None when no row carries the JID, so callers can tell
        "not known yet" apart from a broken table (which raises).
        """
        snapshot = self.table.read()
        row_number = self._locate(snapshot, jid)
        if row_number is None:
            logger.debug(f"Chat {jid} not found in '{snapshot.sheet}'")
            return None
        row = self._row(snapshot, row_number)
        return ChatGoogleInfo(
            album_id=snapshot.value(row, ALBUM_ID),
            album_link=snapshot.value(row, ALBUM_LINK),
            folder_id=snapshot.value(row, FOLDER_ID),
            folder_link=snapshot.value(row, FOLDER_LINK),
        )

    def list_chats(self) -> List[ChatRecord]:
        """All rows that carry a JID, in table order."""
        snapshot = self.table.read()
        jid_column = snapshot.column(CHAT_JID)
        return [
            self._record(snapshot, row)
            for _, row in snapshot.iter_rows()
            if snapshot.cell(row, jid_column)
        ]

    def count_chats(self) -> int:
        """Rows that carry a JID."""
        snapshot = self.table.read()
        jid_column = snapshot.column(CHAT_JID)
        return sum(1 for _, row in snapshot.iter_rows() if snapshot.cell(row, jid_column))

    def _update(self, jid: str, values: Dict[str, object]) -> None:
        snapshot = self.table.read()
        # resolve every target column before touching the sheet
        cells = {snapshot.column(label): value for label, value in values.items()}
        row_number = self._locate(snapshot, jid)
        if row_number is None:
            raise ChatNotFound(jid)
        self.table.write_cells(row_number, cells)

    def update_album_info(self, jid: str, album_id: str, album_link: str) -> None:
        """Store the Photos album of ``jid``. Raises ChatNotFound if unknown."""
        self._update(jid, {ALBUM_ID: album_id, ALBUM_LINK: album_link})
        logger.info(f"Saved album {album_id} for chat {jid}")

    def update_drive_info(self, jid: str, folder_id: str, folder_link: str) -> None:
        """Store the Drive folder of ``jid``. Raises ChatNotFound if unknown."""
        self._update(jid, {FOLDER_ID: folder_id, FOLDER_LINK: folder_link})
        logger.info(f"Saved Drive folder {folder_id} for chat {jid}")

    def update_progress_summary(self, jid: str, summary: SessionSummary) -> None:
        """
        Fold a finished session into the chat's progress columns.

        Synced and failed counts are cumulative across sessions, so call this
        once per session.
        """
        snapshot = self.table.read()
        row_number = self._locate(snapshot, jid)
        columns = {
            label: snapshot.column(label)
            for label in (LAST_SYNC_DATE, LAST_UPLOADED_FILE, SYNCED_FILES_COUNT,
                          FAILED_UPLOADS_COUNT, UPLOAD_STATUS)
        }
        if row_number is None:
            raise ChatNotFound(jid)

        row = self._row(snapshot, row_number)
        synced = _to_int(snapshot.cell(row, columns[SYNCED_FILES_COUNT]))
        failed = _to_int(snapshot.cell(row, columns[FAILED_UPLOADS_COUNT]))
        synced_at = summary.end_time or summary.last_update or datetime.now()

        cells = {
            columns[LAST_SYNC_DATE]: synced_at.date().isoformat(),
            columns[SYNCED_FILES_COUNT]: synced + summary.success_count,
            columns[FAILED_UPLOADS_COUNT]: failed + summary.error_count,
            columns[UPLOAD_STATUS]: STATUS_LABELS[summary.status],
        }
        if summary.last_processed_file:
            cells[columns[LAST_UPLOADED_FILE]] = summary.last_processed_file
        if snapshot.has_column(UPLOAD_PROGRESS) and summary.total_files:
            cells[snapshot.column(UPLOAD_PROGRESS)] = round(
                summary.processed_files / summary.total_files * 100, 1
            )

        self.table.write_cells(row_number, cells)
        logger.info(
            f"Updated progress for chat {jid}: +{summary.success_count} synced, "
            f"+{summary.error_count} failed ({summary.status.value})"
        )

    def register_chat(self, jid: str, chat_name: str,
                      chat_type: Optional[ChatType] = None) -> bool:
        """
        Add a row for ``jid`` unless one already exists.

        Returns True when a row was appended.
        """
        snapshot = self.table.read()
        if self._locate(snapshot, jid) is not None:
            logger.debug(f"Chat {jid} already registered")
            return False

        chat_type = chat_type or ChatType.from_jid(jid)
        self.table.append_records(snapshot, [{
            CHAT_NAME: chat_name,
            CHAT_JID: jid,
            CHAT_TYPE: chat_type.value,
            SYNCED_FILES_COUNT: 0,
            FAILED_UPLOADS_COUNT: 0,
            UPLOAD_STATUS: PENDING_STATUS_LABEL,
            SYNC_ENABLED: True,
            MAX_MEDIA_AGE_DAYS: self.max_media_age_days,
        }])
        logger.info(f"Registered chat {chat_name} ({jid})")
        return True
