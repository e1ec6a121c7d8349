# pawconnect/api/auth/test_auth_api.py
"""
회원가입/로그인/로그아웃 API 테스트

Firebase Auth 호출(Admin SDK, REST 로그인)은 monkeypatch 로 대체합니다.
"""
from types import SimpleNamespace

import pytest
from firebase_admin import auth as firebase_auth

from pawconnect.api.auth.services import auth_service
from pawconnect.services.firebase_auth_service import FirebaseAuthError

SIGNUP_BODY = {
    "email": "mina@pawconnect.test",
    "password": "secret123",
    "username": "mina",
    "ville": "Lyon",
}

@pytest.fixture
def fake_password_auth(app, monkeypatch):
    """email -> localId 로 등록된 계정만 로그인에 성공하는 대역"""
    accounts = {}

    def _sign_in(email, password):
        account = accounts.get(email)
        if not account or account['password'] != password:
            raise FirebaseAuthError("INVALID_LOGIN_CREDENTIALS")
        return {"localId": account['uid'], "idToken": "firebase-id-token"}

    monkeypatch.setattr(auth_service.password_auth, 'sign_in_with_password', _sign_in)
    return accounts

def test_signup_creates_profile_and_tokens(client, db, monkeypatch):
    """회원가입 시 users 문서가 생성되고 토큰이 발급되어야 함"""
    monkeypatch.setattr(firebase_auth, 'create_user', lambda email, password: SimpleNamespace(uid='uid-mina'))

    response = client.post('/api/auth/signup', json=SIGNUP_BODY)

    assert response.status_code == 201
    body = response.get_json()
    assert body['access_token'] and body['refresh_token']
    assert body['user']['user_id'] == 'uid-mina'
    assert body['user']['ville'] == 'Lyon'
    assert 'password' not in body['user']
    assert db.docs('users')['uid-mina']['email'] == SIGNUP_BODY['email']

def test_signup_validation_error(client):
    response = client.post('/api/auth/signup', json={"email": "not-an-email", "password": "1"})
    assert response.status_code == 400
    details = response.get_json()['details']
    assert 'email' in details and 'password' in details and 'username' in details

def test_signup_existing_email_without_profile_completes_account(client, db, monkeypatch, fake_password_auth):
    """Auth 계정만 있고 프로필이 없으면 비밀번호 확인 후 프로필만 생성"""
    def _exists(email, password):
        raise firebase_auth.EmailAlreadyExistsError("exists", None, None)
    monkeypatch.setattr(firebase_auth, 'create_user', _exists)
    fake_password_auth[SIGNUP_BODY['email']] = {'uid': 'uid-old', 'password': SIGNUP_BODY['password']}

    response = client.post('/api/auth/signup', json=SIGNUP_BODY)

    assert response.status_code == 201
    assert 'uid-old' in db.docs('users')

def test_signup_existing_email_with_profile_conflicts(client, make_user, monkeypatch, fake_password_auth):
    def _exists(email, password):
        raise firebase_auth.EmailAlreadyExistsError("exists", None, None)
    monkeypatch.setattr(firebase_auth, 'create_user', _exists)
    fake_password_auth[SIGNUP_BODY['email']] = {'uid': 'uid-old', 'password': SIGNUP_BODY['password']}
    make_user('uid-old')

    response = client.post('/api/auth/signup', json=SIGNUP_BODY)

    assert response.status_code == 409
    assert response.get_json()['error_code'] == 'EMAIL_ALREADY_EXISTS'

def test_signin_success_and_failure(client, make_user, fake_password_auth):
    make_user('uid-mina', 'mina')
    fake_password_auth['mina@pawconnect.test'] = {'uid': 'uid-mina', 'password': 'secret123'}

    ok = client.post('/api/auth/signin', json={"email": "mina@pawconnect.test", "password": "secret123"})
    assert ok.status_code == 200
    assert ok.get_json()['user']['username'] == 'mina'

    bad = client.post('/api/auth/signin', json={"email": "mina@pawconnect.test", "password": "wrong"})
    assert bad.status_code == 401
    assert bad.get_json()['error_code'] == 'INVALID_CREDENTIALS'

def test_signin_without_profile(client, fake_password_auth):
    fake_password_auth['ghost@pawconnect.test'] = {'uid': 'uid-ghost', 'password': 'secret123'}

    response = client.post('/api/auth/signin', json={"email": "ghost@pawconnect.test", "password": "secret123"})

    assert response.status_code == 409
    assert response.get_json()['error_code'] == 'ACCOUNT_SETUP_INCOMPLETE'

def test_me_requires_token(client, make_user, auth_headers):
    assert client.get('/api/auth/me').status_code == 401

    make_user('uid-mina', 'mina')
    response = client.get('/api/auth/me', headers=auth_headers('uid-mina'))
    assert response.status_code == 200
    assert response.get_json()['email'] == 'uid-mina@pawconnect.test'

def test_logout_revokes_tokens(client, db, make_user, monkeypatch, fake_password_auth):
    """로그아웃한 access 토큰은 더 이상 사용할 수 없어야 함"""
    make_user('uid-mina', 'mina')
    fake_password_auth['mina@pawconnect.test'] = {'uid': 'uid-mina', 'password': 'secret123'}
    tokens = client.post('/api/auth/signin', json={"email": "mina@pawconnect.test", "password": "secret123"}).get_json()
    headers = {'Authorization': f"Bearer {tokens['access_token']}"}
    assert client.get('/api/auth/me', headers=headers).status_code == 200

    response = client.post('/api/auth/logout', json={
        "access_token": tokens['access_token'],
        "refresh_token": tokens['refresh_token'],
    })

    assert response.status_code == 200
    assert len(db.docs('revoked_tokens')) == 2
    assert client.get('/api/auth/me', headers=headers).status_code == 401

def test_logout_with_garbage_token(client):
    response = client.post('/api/auth/logout', json={"access_token": "abc", "refresh_token": "def"})
    assert response.status_code == 422
    assert response.get_json()['error_code'] == 'INVALID_TOKEN'

def test_delete_account(client, db, make_user, auth_headers, monkeypatch):
    deleted = []
    monkeypatch.setattr(firebase_auth, 'delete_user', lambda uid: deleted.append(uid))
    make_user('uid-mina')

    response = client.delete('/api/users/me', headers=auth_headers('uid-mina'))

    assert response.status_code == 204
    assert deleted == ['uid-mina']
    assert 'uid-mina' not in db.docs('users')
