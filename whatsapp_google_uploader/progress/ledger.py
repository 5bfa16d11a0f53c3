"""
Per-session upload progress tracking and resumption.
"""
import copy
import json
import logging
import math
import threading
import uuid
from datetime import datetime
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional

from whatsapp_google_uploader.exceptions import InvalidTransition, SessionNotFound
from whatsapp_google_uploader.progress.models import (
    ErrorRecord,
    FileResult,
    SessionProgress,
    SessionStatus,
    SessionSummary,
)

logger = logging.getLogger(__name__)

STATE_FILE_NAME = 'upload_sessions.json'


class ProgressLedger:
    """
    Tracks upload sessions per chat.

    Every mutation is applied in memory under a lock and then written to a
    JSON state file, so a process that crashed mid-run leaves its session
    ``running`` on disk and the next run can mark it interrupted.

    Batches are not deduplicated: callers must record each batch at most once.
    Sessions returned to callers are copies taken under the lock.
    """

    def __init__(self, state_dir: Optional[Path] = None, batch_size: int = 50,
                 clock: Callable[[], datetime] = datetime.now):
        """
        Initialize the ledger.

        Args:
            state_dir: Directory for the state file; None keeps state in memory only
            batch_size: Files per batch, used to derive ``total_batches``
            clock: Source of timestamps
        """
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")

        self.batch_size = batch_size
        self.clock = clock
        self._lock = threading.Lock()
        self._sessions: Dict[str, SessionProgress] = {}

        self.state_file: Optional[Path] = None
        if state_dir is not None:
            state_dir = Path(state_dir)
            state_dir.mkdir(parents=True, exist_ok=True)
            self.state_file = state_dir / STATE_FILE_NAME
            self._load_state()

    def _load_state(self):
        """Load sessions from the state file."""
        if not self.state_file.exists():
            logger.debug(f"No session state at {self.state_file}, starting fresh")
            return

        try:
            with open(self.state_file, 'r') as f:
                data = json.load(f)
            if not isinstance(data, dict) or not isinstance(data.get('sessions', []), list):
                raise ValueError("expected an object with a 'sessions' list")
            sessions = [SessionProgress.from_dict(s) for s in data.get('sessions', [])]
        except (json.JSONDecodeError, IOError, KeyError, ValueError, TypeError, AttributeError) as e:
            logger.warning(f"⚠️  Could not load session state from {self.state_file}: {e}")
            logger.warning("   Starting with empty session history")
            return

        self._sessions = {s.session_id: s for s in sessions}
        running = sum(1 for s in sessions if s.status is SessionStatus.RUNNING)
        logger.info(f"📂 Loaded {len(sessions)} upload sessions from {self.state_file}")
        if running:
            logger.info(f"   {running} session(s) were still running when the last run stopped")

    def _save_state(self):
        """Write all sessions to the state file. Caller holds the lock."""
        if self.state_file is None:
            return
        try:
            with open(self.state_file, 'w') as f:
                json.dump(
                    {'sessions': [s.to_dict() for s in self._sessions.values()]},
                    f, indent=2
                )
        except IOError as e:
            logger.error(f"❌ Could not save session state to {self.state_file}: {e}")
            logger.error("   Progress changes may be lost! Check file permissions and disk space.")

    def _get(self, session_id: str) -> SessionProgress:
        try:
            return self._sessions[session_id]
        except KeyError:
            raise SessionNotFound(session_id) from None

    def _close(self, session: SessionProgress, status: SessionStatus) -> None:
        if session.status.is_terminal:
            raise InvalidTransition(session.session_id, session.status.value, status.value)
        now = self.clock()
        session.status = status
        session.end_time = now
        session.last_update = now

    def start_session(self, chat_id: str, chat_name: str, total_files: int) -> str:
        """
        Open a new session for ``chat_id``.

        A session of the same chat still marked running is moved to
        ``interrupted`` first.

        Returns:
            The new session id
        """
        with self._lock:
            for session in self._sessions.values():
                if session.chat_id == chat_id and session.status is SessionStatus.RUNNING:
                    self._close(session, SessionStatus.INTERRUPTED)
                    logger.warning(
                        f"Session {session.session_id} for {chat_id} did not finish "
                        f"({session.processed_files}/{session.total_files} files); "
                        "marked as interrupted"
                    )

            now = self.clock()
            session = SessionProgress(
                session_id=str(uuid.uuid4()),
                chat_id=chat_id,
                chat_name=chat_name,
                start_time=now,
                last_update=now,
                total_files=total_files,
                total_batches=math.ceil(total_files / self.batch_size),
            )
            self._sessions[session.session_id] = session
            self._save_state()

        logger.info(
            f"Started session {session.session_id} for {chat_name} ({chat_id}): "
            f"{total_files} files in {session.total_batches} batches"
        )
        return session.session_id

    def record_batch(self, session_id: str, batch_index: int,
                     results: Iterable[FileResult]) -> SessionProgress:
        """
        Apply the results of one batch.

        All counters, error records and the batch cursor change together or
        not at all.
        """
        results = list(results)
        with self._lock:
            session = self._get(session_id)
            if session.status.is_terminal:
                raise InvalidTransition(session_id, session.status.value)

            now = self.clock()
            success = errors = duplicates = size = 0
            new_errors: List[ErrorRecord] = []
            next_id = session.next_error_id
            for result in results:
                if result.is_duplicate:
                    duplicates += 1
                elif result.success:
                    success += 1
                    size += result.size
                else:
                    errors += 1
                    new_errors.append(ErrorRecord(
                        id=next_id,
                        session_id=session_id,
                        file_path=result.path,
                        error_type=result.error_type,
                        message=result.error or 'Unknown error',
                        retry_count=result.retry_count,
                        timestamp=now,
                    ))
                    next_id += 1

            session.processed_files += len(results)
            session.success_count += success
            session.error_count += errors
            session.duplicate_count += duplicates
            session.total_size += size
            session.errors.extend(new_errors)
            # workers may record batches out of order
            session.current_batch = max(session.current_batch, batch_index + 1)
            session.last_update = now
            if results:
                session.last_processed_file = results[-1].path
            self._save_state()
            snapshot = copy.deepcopy(session)

        logger.debug(
            f"Session {session_id} batch {batch_index + 1}/{session.total_batches}: "
            f"{success} uploaded, {duplicates} duplicates, {errors} failed"
        )
        for error in new_errors:
            logger.warning(f"Upload failed for {error.file_path}: {error.message}")
        return snapshot

    def finish_session(self, session_id: str, final_status: SessionStatus) -> None:
        """
        Close a session as completed or error.

        Raises:
            InvalidTransition: If the session is already terminal
            ValueError: If ``final_status`` is not completed or error
        """
        if final_status not in (SessionStatus.COMPLETED, SessionStatus.ERROR):
            raise ValueError(f"Sessions finish as completed or error, not {final_status.value}")

        with self._lock:
            session = self._get(session_id)
            self._close(session, final_status)
            self._save_state()
            session = copy.deepcopy(session)

        logger.info(
            f"Session {session_id} {final_status.value}: {session.success_count} uploaded, "
            f"{session.duplicate_count} duplicates, {session.error_count} failed"
        )

    def interrupt_session(self, session_id: str) -> None:
        """Mark a running session as interrupted (e.g. on Ctrl+C)."""
        with self._lock:
            session = self._get(session_id)
            self._close(session, SessionStatus.INTERRUPTED)
            self._save_state()
        logger.warning(f"Session {session_id} interrupted")

    def get_session(self, session_id: str) -> SessionProgress:
        """A copy of the session; changing it does not affect the ledger."""
        with self._lock:
            return copy.deepcopy(self._get(session_id))

    def get_running_session(self, chat_id: str) -> Optional[SessionProgress]:
        """The session of ``chat_id`` still marked running, if any."""
        with self._lock:
            for session in self._sessions.values():
                if session.chat_id == chat_id and session.status is SessionStatus.RUNNING:
                    return copy.deepcopy(session)
        return None

    def list_sessions(self, chat_id: Optional[str] = None) -> List[SessionProgress]:
        """Sessions ordered by start time, optionally for one chat."""
        with self._lock:
            sessions = [
                copy.deepcopy(s) for s in self._sessions.values()
                if chat_id is None or s.chat_id == chat_id
            ]
        return sorted(sessions, key=lambda s: s.start_time)

    def summarize(self, session_id: str) -> SessionSummary:
        """Totals, duration (seconds) and average speed (bytes/s) of a session."""
        with self._lock:
            session = self._get(session_id)
            end = session.end_time or self.clock()
            duration = max((end - session.start_time).total_seconds(), 0.0)
            average_speed = session.total_size / duration if duration > 0 else 0.0

            return SessionSummary(
                session_id=session.session_id,
                chat_id=session.chat_id,
                chat_name=session.chat_name,
                start_time=session.start_time,
                end_time=session.end_time,
                last_update=session.last_update,
                duration=duration,
                total_files=session.total_files,
                processed_files=session.processed_files,
                success_count=session.success_count,
                error_count=session.error_count,
                duplicate_count=session.duplicate_count,
                total_size=session.total_size,
                average_speed=average_speed,
                status=session.status,
                last_processed_file=session.last_processed_file,
            )
