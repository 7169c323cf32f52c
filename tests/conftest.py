import pytest
import requests

from core.config import TestConfig
from core.extensions import db
from core.imports import create_access_token
from main import create_app
from routes.users import seed_demo_users
from routes.products import seed_products
from tests.market_stub import FakeMarketApi


@pytest.fixture
def market_api(monkeypatch):
    fake = FakeMarketApi()
    monkeypatch.setattr(requests, "get", fake)
    return fake


@pytest.fixture
def app(market_api):
    app = create_app(TestConfig)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def seeded(app):
    seed_demo_users()
    seed_products()


@pytest.fixture
def auth_headers(app):
    def make(user_id, **claims):
        token = create_access_token(identity=user_id, additional_claims=claims)
        return {"Authorization": f"Bearer {token}"}
    return make
