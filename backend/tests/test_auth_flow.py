from flask_jwt_extended import create_access_token
from test_utils_seed import admin_user, ensure_user, login, user_with_permissions

API = '/api/v1'


def test_login_and_me_for_explicit_role(client):
    user_with_permissions('me.cashier@example.com', 'CREATE_SALE', 'VIEW_SALES')
    headers = login(client, 'me.cashier@example.com')
    resp = client.get(f'{API}/auth/me', headers=headers)
    assert resp.status_code == 200
    body = resp.get_json()
    assert body['status'] == 'success'
    data = body['data']
    assert data['user']['email'] == 'me.cashier@example.com'
    assert data['perms'] == ['CREATE_SALE', 'VIEW_SALES']
    assert data['unrestricted'] is False
    assert len(data['roles']) == 1


def test_me_for_admin_expands_registry(client):
    admin_user('me.admin@example.com')
    data = client.get(f'{API}/auth/me', headers=login(client, 'me.admin@example.com')).get_json()['data']
    assert data['unrestricted'] is True
    assert 'DELETE_USER' in data['perms']
    assert [r['name'] for r in data['roles']] == ['ADMIN']


def test_login_failures_share_one_message(client):
    ensure_user('login.ok@example.com')
    ensure_user('login.off@example.com', active=False)
    bad_pw = client.post(f'{API}/auth/login', json={'email': 'login.ok@example.com', 'password': 'nope'})
    unknown = client.post(f'{API}/auth/login', json={'email': 'ghost@example.com', 'password': 'pw'})
    inactive = client.post(f'{API}/auth/login', json={'email': 'login.off@example.com', 'password': 'pw'})
    for resp in (bad_pw, unknown, inactive):
        assert resp.status_code == 401
        assert resp.get_json() == {'status': 'fail', 'message': 'Invalid email or password'}
    missing = client.post(f'{API}/auth/login', json={'email': 'login.ok@example.com'})
    assert missing.status_code == 400


def test_me_requires_token(client):
    resp = client.get(f'{API}/auth/me')
    assert resp.status_code == 401
    assert resp.get_json() == {'status': 'fail', 'message': 'Authentication required'}
    garbage = client.get(f'{API}/auth/me', headers={'Authorization': 'Bearer not-a-jwt'})
    assert garbage.status_code == 401


def test_token_for_deactivated_user_rejected(client, app_instance):
    uid = ensure_user('late.off@example.com')
    headers = login(client, 'late.off@example.com')
    from posauthz import get_db
    from posauthz.models.authz import User
    session = get_db()
    session.get(User, uid).is_active = False
    session.commit()
    assert client.get(f'{API}/auth/me', headers=headers).status_code == 401
    with app_instance.app_context():
        stale = create_access_token(identity='999999')
    assert client.get(f'{API}/auth/me', headers={'Authorization': f'Bearer {stale}'}).status_code == 401


def test_nav_filtered_for_caller(client):
    user_with_permissions('nav.tech@example.com', 'VIEW_ASSIGNED_REPAIRS')
    resp = client.get(f'{API}/auth/nav', headers=login(client, 'nav.tech@example.com'))
    assert resp.status_code == 200
    sections = resp.get_json()['data']['sections']
    assert [s['label'] for s in sections] == ['Dashboard', 'Repairs & Service']
    assert sections[1]['items'] == [{'title': 'Repair Jobs', 'href': '/admin/repairs'}]
