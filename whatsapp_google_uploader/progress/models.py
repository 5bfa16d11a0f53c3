"""
Data model for upload sessions and their progress.
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional


class SessionStatus(Enum):
    """States an upload session can be in."""
    RUNNING = "running"
    COMPLETED = "completed"
    INTERRUPTED = "interrupted"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self is not SessionStatus.RUNNING


def _parse_time(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def _format_time(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass
class FileResult:
    """Outcome of one file within a batch."""
    file_id: str
    success: bool
    is_duplicate: bool = False
    error: Optional[str] = None
    error_type: str = "upload_error"
    file_path: Optional[str] = None
    size: int = 0
    retry_count: int = 0

    @property
    def path(self) -> str:
        return self.file_path or self.file_id


@dataclass
class ErrorRecord:
    """A failed file within a session."""
    id: int
    session_id: str
    file_path: str
    error_type: str
    message: str
    retry_count: int
    timestamp: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'session_id': self.session_id,
            'file_path': self.file_path,
            'error_type': self.error_type,
            'message': self.message,
            'retry_count': self.retry_count,
            'timestamp': _format_time(self.timestamp),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ErrorRecord':
        return cls(
            id=data['id'],
            session_id=data['session_id'],
            file_path=data['file_path'],
            error_type=data['error_type'],
            message=data['message'],
            retry_count=data.get('retry_count', 0),
            timestamp=_parse_time(data['timestamp']),
        )


@dataclass
class SessionProgress:
    """Progress of one upload run against one chat."""
    session_id: str
    chat_id: str
    chat_name: str
    start_time: datetime
    last_update: datetime
    total_files: int
    total_batches: int
    processed_files: int = 0
    success_count: int = 0
    error_count: int = 0
    duplicate_count: int = 0
    total_size: int = 0
    current_batch: int = 0
    status: SessionStatus = SessionStatus.RUNNING
    end_time: Optional[datetime] = None
    last_processed_file: Optional[str] = None
    errors: List[ErrorRecord] = field(default_factory=list)

    @property
    def next_error_id(self) -> int:
        return self.errors[-1].id + 1 if self.errors else 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            'session_id': self.session_id,
            'chat_id': self.chat_id,
            'chat_name': self.chat_name,
            'start_time': _format_time(self.start_time),
            'last_update': _format_time(self.last_update),
            'end_time': _format_time(self.end_time),
            'total_files': self.total_files,
            'total_batches': self.total_batches,
            'processed_files': self.processed_files,
            'success_count': self.success_count,
            'error_count': self.error_count,
            'duplicate_count': self.duplicate_count,
            'total_size': self.total_size,
            'current_batch': self.current_batch,
            'status': self.status.value,
            'last_processed_file': self.last_processed_file,
            'errors': [error.to_dict() for error in self.errors],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SessionProgress':
        return cls(
            session_id=data['session_id'],
            chat_id=data['chat_id'],
            chat_name=data.get('chat_name', ''),
            start_time=_parse_time(data['start_time']),
            last_update=_parse_time(data['last_update']),
            end_time=_parse_time(data.get('end_time')),
            total_files=data.get('total_files', 0),
            total_batches=data.get('total_batches', 0),
            processed_files=data.get('processed_files', 0),
            success_count=data.get('success_count', 0),
            error_count=data.get('error_count', 0),
            duplicate_count=data.get('duplicate_count', 0),
            total_size=data.get('total_size', 0),
            current_batch=data.get('current_batch', 0),
            status=SessionStatus(data.get('status', SessionStatus.RUNNING.value)),
            last_processed_file=data.get('last_processed_file'),
            errors=[ErrorRecord.from_dict(e) for e in data.get('errors', [])],
        )


@dataclass
class SessionSummary:
    """Totals and speed of a session; duration in seconds."""
    session_id: str
    chat_id: str
    chat_name: str
    start_time: datetime
    end_time: Optional[datetime]
    last_update: Optional[datetime]
    duration: float
    total_files: int
    processed_files: int
    success_count: int
    error_count: int
    duplicate_count: int
    total_size: int
    average_speed: float
    status: SessionStatus
    last_processed_file: Optional[str] = None

    @property
    def speed_mbps(self) -> float:
        return self.average_speed / (1024 * 1024)
