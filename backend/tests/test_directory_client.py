import json
import pytest
import requests
from role_composer.services.directory import DirectoryError, RoleDirectoryClient


def _response(status, body=None, raw=None):
    resp = requests.Response()
    resp.status_code = status
    if raw is not None:
        resp._content = raw
    elif body is not None:
        resp._content = json.dumps(body).encode()
    else:
        resp._content = b''
    return resp


class RecordingHTTP:
    def __init__(self, *responses):
        self.headers = {}
        self.responses = list(responses)
        self.calls = []

    def request(self, method, url, **kwargs):
        self.calls.append((method, url, kwargs))
        nxt = self.responses.pop(0)
        if isinstance(nxt, Exception):
            raise nxt
        return nxt


def test_list_permission_groups_forwards_token(catalog):
    http = RecordingHTTP(_response(200, {'data': [
        {'id': 'A', 'name': 'Members', 'description': '', 'permissions': [{'id': 'p1', 'name': 'members.read'}]},
    ]}))
    client = RoleDirectoryClient('http://dir.test/api/', token='tok-1', timeout=3, session=http)
    result = client.list_permission_groups()
    assert result.owning_group_id('p1') == 'A'
    method, url, kwargs = http.calls[0]
    assert (method, url) == ('GET', 'http://dir.test/api/tenants/permission-groups')
    assert kwargs['timeout'] == 3
    assert http.headers['Authorization'] == 'Bearer tok-1'


def test_update_role_sends_branch_query():
    http = RecordingHTTP(_response(200, {'message': 'ok'}))
    client = RoleDirectoryClient('http://dir.test', session=http)
    assert client.update_role('r-7', {'name': 'Greeters'}, branch_id='br-2') == {'message': 'ok'}
    method, url, kwargs = http.calls[0]
    assert method == 'PATCH'
    assert url == 'http://dir.test/tenants/edit-role/r-7'
    assert kwargs['params'] == {'branchId': 'br-2'}
    assert kwargs['json'] == {'name': 'Greeters'}
    assert 'Authorization' not in http.headers


def test_create_role_with_empty_body():
    http = RecordingHTTP(_response(201))
    client = RoleDirectoryClient('http://dir.test', session=http)
    assert client.create_role({'name': 'x'}) == {}
    assert http.calls[0][0] == 'POST'


@pytest.mark.parametrize('body, expected', [
    ({'error': {'message': 'Tenant suspended'}}, 'Tenant suspended'),
    ({'message': 'Role name taken'}, 'Role name taken'),
    ({'detail': 'other shape'}, 'Failed to create role'),
])
def test_error_message_extraction(body, expected):
    http = RecordingHTTP(_response(409, body))
    client = RoleDirectoryClient('http://dir.test', session=http)
    with pytest.raises(DirectoryError) as exc:
        client.create_role({'name': 'x'})
    assert exc.value.message == expected
    assert exc.value.status == 409


def test_non_json_error_uses_default():
    http = RecordingHTTP(_response(502, raw=b'<html>bad gateway</html>'))
    client = RoleDirectoryClient('http://dir.test', session=http)
    with pytest.raises(DirectoryError) as exc:
        client.list_permission_groups()
    assert exc.value.message == 'Failed to load permission groups'


def test_transport_error_becomes_directory_error():
    http = RecordingHTTP(requests.ConnectionError('refused'))
    client = RoleDirectoryClient('http://dir.test', session=http)
    with pytest.raises(DirectoryError) as exc:
        client.get_role('r-1')
    assert exc.value.status is None
    assert exc.value.message == 'Failed to load role permissions'


def test_get_role_requires_role_object():
    http = RecordingHTTP(_response(200, {'message': 'no role here'}))
    client = RoleDirectoryClient('http://dir.test', session=http)
    with pytest.raises(DirectoryError):
        client.get_role('r-1')
