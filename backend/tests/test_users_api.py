from sqlalchemy import select
from posauthz import get_db
from posauthz.models.audit import AuditLog
from test_utils_seed import admin_user, ensure_user, login, make_sole_admin, role_id, user_with_permissions

API = '/api/v1'


def test_list_users_paginated(client):
    user_with_permissions('users.viewer@example.com', 'VIEW_USERS')
    for i in range(3):
        ensure_user(f'listed{i}@example.com')
    headers = login(client, 'users.viewer@example.com')
    body = client.get(f'{API}/users?limit=2&offset=1', headers=headers).get_json()
    assert body['status'] == 'success'
    assert len(body['data']['users']) == 2
    assert body['pagination']['limit'] == 2
    assert body['pagination']['offset'] == 1
    assert body['pagination']['returned'] == 2
    assert body['pagination']['total'] >= 4
    assert 'password_hash' not in body['data']['users'][0]

    clamped = client.get(f'{API}/users?limit=5000', headers=headers).get_json()
    assert clamped['pagination']['limit'] == 200
    bad = client.get(f'{API}/users?limit=abc', headers=headers)
    assert bad.status_code == 400
    assert bad.get_json()['field'] == 'limit'


def test_user_effective_permissions(client):
    uid = user_with_permissions('users.target@example.com', 'UPDATE_REPAIR_STATUS')
    user_with_permissions('users.auditor@example.com', 'VIEW_USERS')
    headers = login(client, 'users.auditor@example.com')
    data = client.get(f'{API}/users/{uid}/permissions', headers=headers).get_json()['data']
    assert data['perms'] == ['UPDATE_REPAIR_STATUS']
    assert data['unrestricted'] is False
    assert client.get(f'{API}/users/999999/permissions', headers=headers).status_code == 404


def test_create_user(client):
    user_with_permissions('users.hr@example.com', 'CREATE_USER')
    headers = login(client, 'users.hr@example.com')
    cashier = role_id('CASHIER')
    resp = client.post(f'{API}/users', json={
        'name': 'New Cashier', 'email': 'New.Cashier@Example.com', 'password': 's3cret!', 'role_ids': [cashier],
    }, headers=headers)
    assert resp.status_code == 201, resp.get_json()
    user = resp.get_json()['data']['user']
    assert user['email'] == 'new.cashier@example.com'
    assert user['roles'] == [{'id': cashier, 'name': 'CASHIER'}]
    assert login(client, 'new.cashier@example.com', 's3cret!')

    dup = client.post(f'{API}/users', json={
        'name': 'Again', 'email': 'new.cashier@example.com', 'password': 'x', 'role_ids': [cashier],
    }, headers=headers)
    assert dup.status_code == 400 and dup.get_json()['field'] == 'email'
    no_roles = client.post(f'{API}/users', json={
        'name': 'Roleless', 'email': 'roleless@example.com', 'password': 'x', 'role_ids': [],
    }, headers=headers)
    assert no_roles.status_code == 400 and no_roles.get_json()['field'] == 'role_ids'


def test_set_roles_replaces_assignment_and_audits(client):
    uid = ensure_user('users.reassign@example.com')
    user_with_permissions('users.assigner@example.com', 'ASSIGN_ROLES')
    headers = login(client, 'users.assigner@example.com')
    ids = [role_id('TECHNICIAN'), role_id('CASHIER')]
    resp = client.put(f'{API}/users/{uid}/roles', json={'role_ids': ids}, headers=headers)
    assert resp.status_code == 200
    assert resp.get_json()['data'] == {'user_id': uid, 'role_ids': sorted(ids)}

    unknown = client.put(f'{API}/users/{uid}/roles', json={'role_ids': [999999]}, headers=headers)
    assert unknown.status_code == 400
    assert unknown.get_json()['field'] == 'role_ids'
    malformed = client.put(f'{API}/users/{uid}/roles', json={'role_ids': 'ADMIN'}, headers=headers)
    assert malformed.status_code == 400

    audits = get_db().execute(
        select(AuditLog).where(AuditLog.action == 'USER.ROLES.SET', AuditLog.entity_id == str(uid))
    ).scalars().all()
    assert len(audits) == 1
    assert audits[0].meta == {'role_ids': sorted(ids)}


def test_last_admin_cannot_be_removed(client):
    first = admin_user('sole.admin@example.com')
    make_sole_admin(first)
    headers = login(client, 'sole.admin@example.com')
    cashier, admin = role_id('CASHIER'), role_id('ADMIN')

    resp = client.put(f'{API}/users/{first}/roles', json={'role_ids': [cashier]}, headers=headers)
    assert resp.status_code == 400
    assert resp.get_json()['message'] == 'Cannot remove last ADMIN role'
    assert client.get(f'{API}/auth/me', headers=headers).get_json()['data']['unrestricted'] is True

    second = ensure_user('second.admin@example.com')
    assert client.put(f'{API}/users/{second}/roles', json={'role_ids': [admin]}, headers=headers).status_code == 200
    ok = client.put(f'{API}/users/{first}/roles', json={'role_ids': [cashier]}, headers=headers)
    assert ok.status_code == 200
    # the change applies to the very next request
    assert client.get(f'{API}/users/{first}/permissions', headers=headers).status_code == 403


def test_user_routes_require_permissions(client):
    user_with_permissions('users.nobody@example.com', 'VIEW_SALES')
    headers = login(client, 'users.nobody@example.com')
    assert client.get(f'{API}/users', headers=headers).status_code == 403
    assert client.put(f'{API}/users/1/roles', json={'role_ids': []}, headers=headers).status_code == 403
    assert client.post(f'{API}/users', json={}, headers=headers).status_code == 403
    assert client.get(f'{API}/users/1', headers=headers).status_code == 403
    assert client.put(f'{API}/users/1', json={'name': 'x'}, headers=headers).status_code == 403
    assert client.delete(f'{API}/users/1', headers=headers).status_code == 403


def _audits(action, uid):
    return get_db().execute(
        select(AuditLog).where(AuditLog.action == action, AuditLog.entity_id == str(uid)).order_by(AuditLog.id)
    ).scalars().all()


def test_get_user(client):
    uid = ensure_user('users.single@example.com', name='Single')
    user_with_permissions('users.reader@example.com', 'VIEW_USERS')
    headers = login(client, 'users.reader@example.com')
    body = client.get(f'{API}/users/{uid}', headers=headers).get_json()
    assert body['data']['user']['id'] == uid
    assert body['data']['user']['name'] == 'Single'
    assert body['data']['user']['is_active'] is True
    assert client.get(f'{API}/users/999999', headers=headers).status_code == 404


def test_update_user_and_audit_diff(client):
    uid = ensure_user('users.editme@example.com', name='Before')
    ensure_user('users.taken@example.com')
    user_with_permissions('users.editor@example.com', 'UPDATE_USER')
    headers = login(client, 'users.editor@example.com')

    resp = client.put(f'{API}/users/{uid}', json={'name': ' After ', 'password': 'n3w-pass'}, headers=headers)
    assert resp.status_code == 200, resp.get_json()
    assert resp.get_json()['data']['user']['name'] == 'After'
    assert login(client, 'users.editme@example.com', 'n3w-pass')

    taken = client.put(f'{API}/users/{uid}', json={'email': 'Users.Taken@example.com'}, headers=headers)
    assert taken.status_code == 400 and taken.get_json()['field'] == 'email'
    same = client.put(f'{API}/users/{uid}', json={'email': 'USERS.EDITME@example.com'}, headers=headers)
    assert same.status_code == 200
    bad_flag = client.put(f'{API}/users/{uid}', json={'is_active': 'no'}, headers=headers)
    assert bad_flag.status_code == 400 and bad_flag.get_json()['field'] == 'is_active'

    audits = _audits('USER.UPDATE', uid)
    assert len(audits) == 2
    assert audits[0].meta['changes'] == {'name': {'before': 'Before', 'after': 'After'}}
    assert client.put(f'{API}/users/999999', json={'name': 'x'}, headers=headers).status_code == 404


def test_deactivate_user_blocks_login_and_audits(client):
    uid = ensure_user('users.leaver@example.com')
    user_with_permissions('users.remover@example.com', 'DELETE_USER')
    headers = login(client, 'users.remover@example.com')
    resp = client.delete(f'{API}/users/{uid}', headers=headers)
    assert resp.status_code == 200
    assert resp.get_json()['data']['user']['is_active'] is False
    bad = client.post(f'{API}/auth/login', json={'email': 'users.leaver@example.com', 'password': 'pw'})
    assert bad.status_code == 401
    audits = _audits('USER.DELETE', uid)
    assert len(audits) == 1
    assert audits[0].meta == {'email': 'users.leaver@example.com'}


def test_last_admin_cannot_be_deactivated(client):
    sole = admin_user('sole.active.admin@example.com')
    make_sole_admin(sole)
    headers = login(client, 'sole.active.admin@example.com')

    resp = client.delete(f'{API}/users/{sole}', headers=headers)
    assert resp.status_code == 400
    assert resp.get_json()['field'] == 'is_active'
    assert resp.get_json()['message'] == 'Cannot deactivate the last ADMIN user'
    off = client.put(f'{API}/users/{sole}', json={'is_active': False}, headers=headers)
    assert off.status_code == 400
    assert _audits('USER.DELETE', sole) == []

    # an inactive ADMIN holder does not count as a remaining admin
    dormant = admin_user('dormant.admin@example.com')
    assert client.delete(f'{API}/users/{dormant}', headers=headers).status_code == 200
    assert client.delete(f'{API}/users/{sole}', headers=headers).status_code == 400

    backup = admin_user('backup.admin@example.com')
    assert client.delete(f'{API}/users/{sole}', headers=headers).status_code == 200
    assert login(client, 'backup.admin@example.com')
    assert client.put(f'{API}/users/{backup}', json={'is_active': False}, headers=headers).status_code == 401
