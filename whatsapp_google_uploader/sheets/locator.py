"""
Find-or-create of the chat spreadsheet inside the app folder on Drive.
"""
import logging
from typing import Optional

logger = logging.getLogger(__name__)

APP_FOLDER_NAME = 'WhatsApp Google Uploader'
FOLDER_MIME_TYPE = 'application/vnd.google-apps.folder'
SPREADSHEET_MIME_TYPE = 'application/vnd.google-apps.spreadsheet'


def _escape_query(value: str) -> str:
    """Escape a value for use in a Drive API query string."""
    return value.replace("\\", "\\\\").replace("'", "\\'")


def _first_id(drive_service, query: str) -> Optional[str]:
    results = drive_service.files().list(q=query, fields='files(id, name)').execute()
    for found in results.get('files', []):
        if found.get('id'):
            return found['id']
    return None


def find_or_create_folder(drive_service, name: str = APP_FOLDER_NAME) -> str:
    """Return the ID of a top-level Drive folder called ``name``, creating it if needed."""
    query = (
        f"name='{_escape_query(name)}' and mimeType='{FOLDER_MIME_TYPE}' "
        f"and trashed=false"
    )
    folder_id = _first_id(drive_service, query)
    if folder_id:
        return folder_id

    folder = drive_service.files().create(
        body={'name': name, 'mimeType': FOLDER_MIME_TYPE},
        fields='id'
    ).execute()
    logger.info(f"📁 Created Drive folder '{name}'")
    return folder['id']


def find_or_create_spreadsheet(drive_service, sheets_service, title: str = 'chats',
                               sheet: str = 'chats',
                               folder_name: str = APP_FOLDER_NAME) -> str:
    """
    Locate the spreadsheet ``title`` inside ``folder_name``.

    A missing spreadsheet is created with one tab called ``sheet`` and moved
    into the folder. Header rows are left to the tables that own the tabs.

    Returns:
        The spreadsheet ID
    """
    folder_id = find_or_create_folder(drive_service, folder_name)
    query = (
        f"name='{_escape_query(title)}' and mimeType='{SPREADSHEET_MIME_TYPE}' "
        f"and '{folder_id}' in parents and trashed=false"
    )
    spreadsheet_id = _first_id(drive_service, query)
    if spreadsheet_id:
        logger.debug(f"Found spreadsheet '{title}' ({spreadsheet_id}) in '{folder_name}'")
        return spreadsheet_id

    created = sheets_service.spreadsheets().create(
        body={
            'properties': {'title': title},
            'sheets': [{'properties': {'title': sheet}}],
        },
        fields='spreadsheetId'
    ).execute()
    spreadsheet_id = created['spreadsheetId']

    drive_service.files().update(
        fileId=spreadsheet_id,
        addParents=folder_id,
        fields='id, parents'
    ).execute()
    logger.info(f"📊 Created spreadsheet '{folder_name}/{title}' ({spreadsheet_id})")
    return spreadsheet_id
