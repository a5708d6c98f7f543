from datetime import datetime, timedelta, timezone

import jwt
from eth_account import Account
from eth_account.messages import encode_defunct

import config
from wallet_auth.tokens import (
    bearer_token,
    create_access_token,
    decode_access_token,
    is_valid_address,
    recover_signer,
    verify_wallet_signature,
)

MESSAGE = 'Sign in to TrustQuests'


def sign(account, message=MESSAGE):
    return Account.sign_message(encode_defunct(text=message), account.key).signature.hex()


def login_body(account, message=MESSAGE, signature=None):
    return {
        'address': account.address,
        'message': message,
        'signature': signature or sign(account, message),
    }


def test_recover_signer_returns_lowercase_address(wallet):
    assert recover_signer(MESSAGE, sign(wallet)) == wallet.address.lower()


def test_verify_wallet_signature(wallet, other_wallet):
    assert verify_wallet_signature(wallet.address, MESSAGE, sign(wallet)) is True
    assert verify_wallet_signature(other_wallet.address, MESSAGE, sign(wallet)) is False
    assert verify_wallet_signature(wallet.address, MESSAGE, '0xdeadbeef') is False


def test_is_valid_address():
    assert is_valid_address('0x' + 'aB' * 20)
    assert not is_valid_address('0x123')
    assert not is_valid_address(None)


def test_bearer_token_parsing():
    assert bearer_token('Bearer abc') == 'abc'
    assert bearer_token('Basic abc') is None
    assert bearer_token('Bearer ') is None
    assert bearer_token(None) is None


def test_token_carries_lowercase_address_and_user_id():
    token = create_access_token('0xABCDEF0000000000000000000000000000000000', 42)

    claims = decode_access_token(token)

    assert claims['address'] == '0xabcdef0000000000000000000000000000000000'
    assert claims['userId'] == '42'
    assert claims['exp'] - claims['iat'] == config.JWT_EXPIRES_DAYS * 24 * 60 * 60


def test_login_issues_token_and_creates_user(client, wallet, fake_db):
    response = client.post('/api/auth/login', json=login_body(wallet))

    assert response.status_code == 200
    payload = response.get_json()
    assert payload['user']['address'] == wallet.address.lower()
    assert decode_access_token(payload['token'])['userId'] == payload['user']['id']
    assert [row['address'] for row in fake_db.rows('users')] == [wallet.address.lower()]


def test_login_twice_reuses_user(client, wallet, fake_db):
    first = client.post('/api/auth/login', json=login_body(wallet)).get_json()
    second = client.post('/api/auth/login', json=login_body(wallet)).get_json()

    assert first['user']['id'] == second['user']['id']
    assert len(fake_db.rows('users')) == 1


def test_login_rejects_signature_from_another_wallet(client, wallet, other_wallet, fake_db):
    body = login_body(wallet, signature=sign(other_wallet))

    response = client.post('/api/auth/login', json=body)

    assert response.status_code == 401
    assert response.get_json() == {'error': 'Invalid signature'}
    assert fake_db.rows('users') == []


def test_login_validates_body(client):
    response = client.post('/api/auth/login', json={'address': '0x123'})

    assert response.status_code == 400
    fields = {d['field'] for d in response.get_json()['details']}
    assert fields == {'address', 'message', 'signature'}


def test_login_without_secret_is_a_server_error(client, wallet, monkeypatch):
    monkeypatch.setattr(config, 'JWT_SECRET', None)

    response = client.post('/api/auth/login', json=login_body(wallet))

    assert response.status_code == 500
    assert response.get_json() == {'error': 'Server configuration error'}


def test_verify_returns_token_user(client, wallet, auth_headers):
    response = client.post('/api/auth/verify', headers=auth_headers(wallet))

    assert response.status_code == 200
    payload = response.get_json()
    assert payload['valid'] is True
    assert payload['user']['address'] == wallet.address.lower()


def test_verify_without_token(client):
    response = client.post('/api/auth/verify')

    assert response.status_code == 401
    assert response.get_json() == {'error': 'No token provided'}


def test_expired_token_is_rejected(client, wallet, auth_headers):
    auth_headers(wallet)
    past = datetime.now(timezone.utc) - timedelta(days=8)
    token = jwt.encode(
        {'address': wallet.address.lower(), 'userId': 'x', 'iat': past, 'exp': past + timedelta(days=7)},
        'test-secret-with-at-least-32-bytes!',
        algorithm='HS256',
    )

    response = client.post('/api/auth/verify', headers={'Authorization': f'Bearer {token}'})
    assert response.status_code == 401
    assert response.get_json()['error'] == 'Invalid token'

    response = client.get('/api/quest-drafts', headers={'Authorization': f'Bearer {token}'})
    assert response.status_code == 401


def test_token_signed_with_other_secret_is_rejected(client, wallet):
    token = jwt.encode({'address': wallet.address.lower(), 'userId': '1'}, 'some-other-secret-that-is-long-enough', algorithm='HS256')

    response = client.get('/api/quest-drafts', headers={'Authorization': f'Bearer {token}'})

    assert response.status_code == 401
    assert response.get_json()['error'] == 'Invalid token'


def test_protected_route_without_secret_is_a_server_error(client, wallet, auth_headers, monkeypatch):
    headers = auth_headers(wallet)
    monkeypatch.setattr(config, 'JWT_SECRET', '')

    response = client.get('/api/quest-drafts', headers=headers)

    assert response.status_code == 500
