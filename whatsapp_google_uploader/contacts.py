"""
Google Contacts lookup for naming individual chats.
"""
import logging
import re
from dataclasses import dataclass
from typing import Dict, Optional

from googleapiclient.errors import HttpError

logger = logging.getLogger(__name__)

PAGE_SIZE = 1000


@dataclass
class ContactInfo:
    """A contact reachable at one phone number."""
    phone_number: str
    display_name: str
    given_name: Optional[str] = None
    family_name: Optional[str] = None


def normalize_phone_number(phone: str) -> str:
    """Digits only, without the Brazilian country code or a trunk zero."""
    normalized = re.sub(r'\D', '', phone)
    if normalized.startswith('55') and len(normalized) > 11:
        normalized = normalized[2:]
    if normalized.startswith('0'):
        normalized = normalized[1:]
    return normalized


class ContactsCache:
    """
    Phone-number keyed cache of Google Contacts.

    Owned by the caller: ``load()`` fills it from the People API and
    ``invalidate()`` empties it.
    """

    def __init__(self):
        self._contacts: Dict[str, ContactInfo] = {}
        self._loaded = False

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    def __len__(self) -> int:
        return len(self._contacts)

    def invalidate(self) -> None:
        self._contacts = {}
        self._loaded = False

    def load(self, people_service) -> int:
        """
        Replace the cache with the user's contacts.

        Args:
            people_service: People API resource from ``build('people', 'v1', ...)``

        Returns:
            Number of phone numbers cached
        """
        contacts: Dict[str, ContactInfo] = {}
        page_token = None
        logger.info("📱 Loading contacts from Google Contacts...")

        try:
            while True:
                response = people_service.people().connections().list(
                    resourceName='people/me',
                    pageSize=PAGE_SIZE,
                    personFields='names,phoneNumbers',
                    pageToken=page_token
                ).execute()

                for person in response.get('connections', []):
                    self._add_person(contacts, person)

                page_token = response.get('nextPageToken')
                if not page_token:
                    break
        except HttpError as e:
            if e.resp.status == 403:
                logger.warning("⚠️  Google Contacts API not enabled or no permission")
                logger.warning("   Re-authenticate to grant the contacts.readonly scope")
                self.invalidate()
                return 0
            raise

        self._contacts = contacts
        self._loaded = True
        logger.info(f"✅ Loaded {len(contacts)} contacts from Google Contacts")
        return len(contacts)

    @staticmethod
    def _add_person(contacts: Dict[str, ContactInfo], person: dict) -> None:
        names = person.get('names') or [{}]
        name = names[0]
        given_name = name.get('givenName') or None
        family_name = name.get('familyName') or None
        display_name = name.get('displayName') or ' '.join(
            part for part in (given_name, family_name) if part
        )
        if not display_name:
            return

        for phone in person.get('phoneNumbers', []):
            value = phone.get('value')
            if not value:
                continue
            normalized = normalize_phone_number(value)
            contacts[normalized] = ContactInfo(
                phone_number=normalized,
                display_name=display_name,
                given_name=given_name,
                family_name=family_name,
            )

    def find_by_phone(self, phone_number: str) -> Optional[ContactInfo]:
        """Exact match first, then a match on the last 8 or 9 digits."""
        normalized = normalize_phone_number(phone_number)
        contact = self._contacts.get(normalized)
        if contact or len(normalized) < 8:
            return contact

        for length in (8, 9):
            suffix = normalized[-length:]
            for key, value in self._contacts.items():
                if key.endswith(suffix):
                    return value
        return None

    def get_contact_name(self, jid: str) -> Optional[str]:
        phone_number = jid.split('@')[0]
        if len(phone_number) < 8:
            return None
        contact = self.find_by_phone(phone_number)
        return contact.display_name if contact else None
