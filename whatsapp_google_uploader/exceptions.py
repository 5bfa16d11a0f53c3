"""
Custom exceptions for the WhatsApp Google Uploader.
"""
from typing import Optional


class UploaderError(Exception):
    """Base exception for uploader errors."""
    pass


class ConfigurationError(UploaderError):
    """Error related to configuration."""
    pass


class AuthenticationError(UploaderError):
    """Error during Google authentication."""
    pass


class InvalidColumnLabel(UploaderError, ValueError):
    """Raised when a spreadsheet column label is not made of letters A-Z."""
    def __init__(self, label):
        super().__init__(f"Invalid column label: {label!r}")
        self.label = label


class ChatNotFound(UploaderError):
    """Raised when an update targets a JID that has no row in the chat table."""
    def __init__(self, jid: str):
        super().__init__(
            f"Chat {jid} is not registered in the chat table. "
            "Register the chat before updating it."
        )
        self.jid = jid


class MalformedTable(UploaderError):
    """Raised when an expected header/column is missing from a sheet."""
    def __init__(self, sheet: str, column: str, message: Optional[str] = None):
        super().__init__(
            message or f"Sheet '{sheet}' has no '{column}' column in its header row"
        )
        self.sheet = sheet
        self.column = column


class SessionNotFound(UploaderError):
    """Raised when a session id is unknown to the progress ledger."""
    def __init__(self, session_id: str):
        super().__init__(f"Unknown upload session: {session_id}")
        self.session_id = session_id


class InvalidTransition(UploaderError):
    """Raised when a session status change is not allowed."""
    def __init__(self, session_id: str, status: str, target: Optional[str] = None):
        if target:
            message = f"Session {session_id} cannot move from '{status}' to '{target}'"
        else:
            message = f"Session {session_id} is already '{status}'"
        super().__init__(message)
        self.session_id = session_id
        self.status = status
        self.target = target
