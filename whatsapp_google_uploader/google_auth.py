"""
OAuth 2.0 credentials and API service objects for Google Sheets, Drive
and Contacts.
"""
import logging
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Sequence

from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow
from googleapiclient.discovery import build

from whatsapp_google_uploader.exceptions import AuthenticationError

logger = logging.getLogger(__name__)

SCOPES = [
    'https://www.googleapis.com/auth/spreadsheets',
    'https://www.googleapis.com/auth/drive.file',
    'https://www.googleapis.com/auth/contacts.readonly',
]

APP_DIR_NAME = 'whatsapp-google-uploader'


def default_token_file() -> Path:
    """Token location under the XDG config directory."""
    xdg_config_home = os.environ.get('XDG_CONFIG_HOME')
    base_dir = Path(xdg_config_home) if xdg_config_home else (Path.home() / '.config')
    return base_dir / APP_DIR_NAME / 'token.json'


def _is_headless_environment() -> bool:
    if sys.platform == 'darwin':
        return bool(os.environ.get('SSH_CLIENT') and not os.environ.get('DISPLAY'))
    if sys.platform.startswith('linux'):
        return os.environ.get('DISPLAY') is None
    return False


def _save_token(creds: Credentials, token_file: Path) -> None:
    token_file.parent.mkdir(parents=True, exist_ok=True)
    with open(token_file, 'w') as token:
        token.write(creds.to_json())
    # Token holds a refresh token; restrict it to the owner
    try:
        os.chmod(token_file, 0o600)
    except OSError as e:
        logger.debug(f"Could not restrict permissions on {token_file}: {e}")


def get_credentials(credentials_file: str, token_file: Optional[Path] = None,
                    scopes: Sequence[str] = SCOPES) -> Credentials:
    """
    Load cached credentials, refreshing or re-authorizing as needed.

    Args:
        credentials_file: OAuth client secrets JSON from the Cloud Console
        token_file: Where the user token is cached (default: XDG config dir)
        scopes: OAuth scopes to request

    Raises:
        AuthenticationError: If no valid credentials can be obtained
    """
    token_file = Path(token_file) if token_file else default_token_file()
    creds = None

    if token_file.exists():
        creds = Credentials.from_authorized_user_file(str(token_file), list(scopes))

    if creds and creds.valid:
        return creds

    try:
        if creds and creds.expired and creds.refresh_token:
            logger.info("Refreshing Google access token...")
            creds.refresh(Request())
        else:
            if not Path(credentials_file).exists():
                raise AuthenticationError(
                    f"OAuth client file not found: {credentials_file}. "
                    "Download it from https://console.cloud.google.com/apis/credentials"
                )
            flow = InstalledAppFlow.from_client_secrets_file(credentials_file, list(scopes))
            if _is_headless_environment():
                logger.info("Running in headless mode - open the printed URL on another device")
                creds = flow.run_local_server(port=8080, open_browser=False)
            else:
                creds = flow.run_local_server(port=0)
    except (GoogleAuthError, ValueError) as e:
        raise AuthenticationError(f"Google authentication failed: {e}") from e

    _save_token(creds, token_file)
    logger.info("Successfully authenticated with Google")
    return creds


@dataclass
class GoogleServices:
    """API resources sharing one set of credentials."""
    sheets: Any
    drive: Any
    people: Any


def build_services(creds: Credentials) -> GoogleServices:
    return GoogleServices(
        sheets=build('sheets', 'v4', credentials=creds),
        drive=build('drive', 'v3', credentials=creds),
        people=build('people', 'v1', credentials=creds),
    )
