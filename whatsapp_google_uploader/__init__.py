"""
WhatsApp Google Uploader

Keeps track of which WhatsApp chats have been uploaded to Google Photos and
Drive: a JID-keyed chat table in Google Sheets plus a resumable per-session
progress ledger.
"""
__version__ = "0.1.0"

from whatsapp_google_uploader.config import UploaderConfig
from whatsapp_google_uploader.exceptions import (
    UploaderError,
    ConfigurationError,
    AuthenticationError,
    InvalidColumnLabel,
    ChatNotFound,
    MalformedTable,
    SessionNotFound,
    InvalidTransition,
)

__all__ = [
    '__version__',
    'UploaderConfig',
    'UploaderError',
    'ConfigurationError',
    'AuthenticationError',
    'InvalidColumnLabel',
    'ChatNotFound',
    'MalformedTable',
    'SessionNotFound',
    'InvalidTransition',
]
