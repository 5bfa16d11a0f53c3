"""
Tests for the Google Contacts cache.
"""
from unittest.mock import MagicMock, Mock

import pytest
from googleapiclient.errors import HttpError

from whatsapp_google_uploader.contacts import ContactsCache, normalize_phone_number


def _person(name, *phones, given=None, family=None):
    return {
        'names': [{'displayName': name, 'givenName': given, 'familyName': family}],
        'phoneNumbers': [{'value': phone} for phone in phones],
    }


def _people_service(*pages):
    """People service mock returning ``pages`` in order."""
    service = MagicMock()
    service.people.return_value.connections.return_value.list.return_value.execute.side_effect = (
        list(pages)
    )
    return service


class TestNormalizePhoneNumber:
    """Tests for normalize_phone_number."""

    @pytest.mark.parametrize('raw,expected', [
        ('+55 (11) 99999-9999', '11999999999'),
        ('5511999999999', '11999999999'),
        ('011 99999-9999', '11999999999'),
        ('(11) 98888-7777', '11988887777'),
        ('551199998888', '1199998888'),
        ('+1 415 555 0100', '14155550100'),
    ])
    def test_normalize(self, raw, expected):
        assert normalize_phone_number(raw) == expected

    def test_short_number_keeps_55(self):
        assert normalize_phone_number('5599887766') == '5599887766'


class TestContactsCache:
    """Tests for ContactsCache."""

    def test_load_paginates(self):
        service = _people_service(
            {'connections': [_person('Maria Silva', '+55 11 99999-9999')],
             'nextPageToken': 'page-2'},
            {'connections': [_person('João', '(11) 98888-8888', '+55 21 97777-7777')]},
        )
        cache = ContactsCache()

        assert cache.load(service) == 3
        assert cache.is_loaded
        assert len(cache) == 3

        list_call = service.people.return_value.connections.return_value.list
        assert list_call.call_count == 2
        assert list_call.call_args_list[0].kwargs['pageToken'] is None
        assert list_call.call_args_list[1].kwargs['pageToken'] == 'page-2'
        assert list_call.call_args_list[0].kwargs['resourceName'] == 'people/me'
        assert list_call.call_args_list[0].kwargs['personFields'] == 'names,phoneNumbers'

    def test_people_without_names_or_phones(self):
        service = _people_service({'connections': [
            {'phoneNumbers': [{'value': '11999999999'}]},
            {'names': [{'displayName': 'No phone'}]},
            _person('', '11977777777', given='Ana', family='Souza'),
            {'names': [{'displayName': 'Empty'}], 'phoneNumbers': [{}]},
        ]})
        cache = ContactsCache()
        cache.load(service)

        assert len(cache) == 1
        assert cache.find_by_phone('11977777777').display_name == 'Ana Souza'

    def test_exact_and_suffix_lookup(self):
        cache = ContactsCache()
        cache.load(_people_service({'connections': [
            _person('Maria', '+55 11 99999-9999', given='Maria'),
            _person('Pedro', '3333-4444'),
        ]}))

        assert cache.find_by_phone('5511999999999').given_name == 'Maria'
        # stored without the mobile 9 prefix, looked up with it
        assert cache.find_by_phone('5511933334444').display_name == 'Pedro'
        assert cache.find_by_phone('5511900000000') is None
        assert cache.find_by_phone('1234') is None

    def test_get_contact_name(self):
        cache = ContactsCache()
        cache.load(_people_service({'connections': [_person('Maria', '+55 11 99999-9999')]}))

        assert cache.get_contact_name('5511999999999@s.whatsapp.net') == 'Maria'
        assert cache.get_contact_name('5521911111111@s.whatsapp.net') is None
        assert cache.get_contact_name('123@s.whatsapp.net') is None

    def test_permission_denied(self, caplog):
        service = MagicMock()
        service.people.return_value.connections.return_value.list.return_value.execute.side_effect = (
            HttpError(Mock(status=403, reason='Forbidden'), b'')
        )
        cache = ContactsCache()

        assert cache.load(service) == 0
        assert not cache.is_loaded
        assert 'no permission' in caplog.text

    def test_other_http_errors_propagate(self):
        service = MagicMock()
        service.people.return_value.connections.return_value.list.return_value.execute.side_effect = (
            HttpError(Mock(status=500, reason='Server Error'), b'')
        )
        with pytest.raises(HttpError):
            ContactsCache().load(service)

    def test_invalidate(self):
        cache = ContactsCache()
        cache.load(_people_service({'connections': [_person('Maria', '11999999999')]}))

        cache.invalidate()

        assert not cache.is_loaded
        assert len(cache) == 0
        assert cache.get_contact_name('5511999999999@s.whatsapp.net') is None

    def test_reload_replaces_contents(self):
        cache = ContactsCache()
        cache.load(_people_service({'connections': [_person('Old', '11999999999')]}))
        cache.load(_people_service({'connections': [_person('New', '11988888888')]}))

        assert cache.find_by_phone('11999999999') is None
        assert cache.find_by_phone('11988888888').display_name == 'New'
