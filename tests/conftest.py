import pytest
from eth_account import Account

import config
import supabase_client
from tests.fakes import FakeSupabase


@pytest.fixture(autouse=True)
def jwt_secret(monkeypatch):
    monkeypatch.setattr(config, 'JWT_SECRET', 'test-secret-with-at-least-32-bytes!')
    return 'test-secret-with-at-least-32-bytes!'


@pytest.fixture
def fake_db(monkeypatch):
    db = FakeSupabase()
    monkeypatch.setattr(supabase_client, 'supabase', db)
    return db


@pytest.fixture
def app(fake_db):
    from main import app as flask_app
    flask_app.config['TESTING'] = True
    return flask_app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def wallet():
    return Account.create()


@pytest.fixture
def other_wallet():
    return Account.create()


@pytest.fixture
def auth_headers(fake_db):
    """Build bearer headers for an account, creating its user record"""
    from user_profiles.user_service import user_service
    from wallet_auth.tokens import create_access_token

    def build(account):
        user = user_service.get_or_create_user(account.address)
        token = create_access_token(user['address'], user['id'])
        return {'Authorization': f'Bearer {token}'}

    return build
