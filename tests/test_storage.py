import pytest
from unittest.mock import MagicMock

import requests

from g2b_monitor.storage import StoreError, SupabaseStore
from g2b_monitor.storage.supabase_store import quote_filter_value


def make_response(status=200, body=None):
    response = MagicMock()
    response.status_code = status
    response.ok = 200 <= status < 300
    response.json.return_value = body
    response.text = str(body)
    return response


@pytest.fixture
def session():
    s = MagicMock()
    s.headers = {}
    return s


@pytest.fixture
def store(session):
    config = {'url': 'https://abc.supabase.co/', 'key': 'secret', 'table': 'announcements', 'timeout': 5}
    return SupabaseStore(config, session=session)


def test_requires_credentials():
    with pytest.raises(StoreError):
        SupabaseStore({'url': 'https://abc.supabase.co'}, session=MagicMock())


def test_session_headers(store, session):
    assert store.endpoint == 'https://abc.supabase.co/rest/v1/announcements'
    assert session.headers['apikey'] == 'secret'
    assert session.headers['Authorization'] == 'Bearer secret'


def test_find_by_id_found(store, session):
    session.request.return_value = make_response(200, {'id': '123'})

    assert store.find_by_id('123') == {'id': '123'}

    args, kwargs = session.request.call_args
    assert args == ('GET', store.endpoint)
    assert kwargs['params'] == {'id': 'eq.123', 'select': 'id'}
    assert kwargs['headers']['Accept'] == 'application/vnd.pgrst.object+json'
    assert kwargs['timeout'] == 5


def test_find_by_id_not_found(store, session):
    session.request.return_value = make_response(406, {'code': 'PGRST116', 'message': 'no rows'})
    assert store.find_by_id('404') is None


def test_find_by_id_other_error_raises(store, session):
    session.request.return_value = make_response(500, {'code': 'XX000', 'message': 'boom'})

    with pytest.raises(StoreError) as exc_info:
        store.find_by_id('1')
    assert exc_info.value.status == 500
    assert exc_info.value.code == 'XX000'


def test_network_error_wrapped(store, session):
    session.request.side_effect = requests.ConnectionError("refused")
    with pytest.raises(StoreError):
        store.find_by_id('1')


def test_insert(store, session):
    session.request.return_value = make_response(201)
    record = {'id': '1', 'title': 't', 'is_sent': False}

    store.insert(record)

    args, kwargs = session.request.call_args
    assert args[0] == 'POST'
    assert kwargs['json'] == record
    assert kwargs['headers']['Prefer'] == 'return=minimal'


def test_insert_conflict_raises(store, session):
    session.request.return_value = make_response(409, {'code': '23505', 'message': 'duplicate key'})
    with pytest.raises(StoreError):
        store.insert({'id': '1'})


def test_mark_sent_bulk_update(store, session):
    session.request.return_value = make_response(204)

    store.mark_sent(['1', '2'])

    session.request.assert_called_once()
    args, kwargs = session.request.call_args
    assert args[0] == 'PATCH'
    assert kwargs['params'] == {'id': 'in.("1","2")'}
    assert kwargs['json'] == {'is_sent': True}


def test_mark_sent_empty_is_noop(store, session):
    store.mark_sent([])
    session.request.assert_not_called()


def test_quote_filter_value_escapes():
    assert quote_filter_value('a"b') == '"a\\"b"'
    assert quote_filter_value('제목_2024/01/01') == '"제목_2024/01/01"'
