"""
Pytest fixtures for jewelstock backend tests.

Provides test database setup, two-shop tenant fixtures, session tokens and
the test client.
"""

import pytest

from jewelstock import create_app
from jewelstock.extensions import db
from jewelstock.models import Shop, User
from jewelstock.repository import InventoryRepository
from jewelstock.services import metal_rate_service, products_service, shop_service, user_service
from jewelstock.services.session_service import create_session


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'WRITE_RETRY_ATTEMPTS': 1,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def repo(db_session):
    return InventoryRepository(db_session)


def _create_shop(name: str, owner_name: str, owner_email: str) -> Shop:
    created = shop_service.create_shop(name, owner_name, owner_email)
    return db.session.get(Shop, created["shop"]["id"])


@pytest.fixture(scope='function')
def shop_a(db_session):
    """Shop A (first tenant) with its SHOP_OWNER."""
    return _create_shop("Shop A - Gold House", "Asha", "asha@goldhouse.test")


@pytest.fixture(scope='function')
def shop_b(db_session):
    """Shop B (second tenant) with its SHOP_OWNER."""
    return _create_shop("Shop B - Silver Line", "Bela", "bela@silverline.test")


@pytest.fixture(scope='function')
def owner_a(db_session, shop_a):
    return db_session.get(User, shop_a.owner_id)


@pytest.fixture(scope='function')
def owner_b(db_session, shop_b):
    return db_session.get(User, shop_b.owner_id)


@pytest.fixture(scope='function')
def manager_a(db_session, shop_a):
    """SHOP_MANAGER in Shop A with the default permissions."""
    created = user_service.create_shop_manager(shop_a.id, "Manu", "manu@goldhouse.test")
    return db_session.get(User, created["id"])


@pytest.fixture(scope='function')
def super_admin(db_session):
    return user_service.create_super_admin("Root", "root@jewelstock.test")


@pytest.fixture(scope='function')
def rates_a(repo, shop_a):
    """Gold 6000/g, silver 75/g in Shop A."""
    return metal_rate_service.update_metal_rates(repo, shop_id=shop_a.id, gold_rate=6000, silver_rate=75)


def make_product(repo, shop_id: int, **overrides) -> dict:
    """Create a product through the service (opening STOCK_IN included)."""
    patch = {
        "name": "Gold Ring",
        "weight": 10.0,
        "quantity": 1,
        "making_charge": 500.0,
        "making_charge_type": "per_gram",
        "profit_percent": 10.0,
        "item_type": "Individual",
        "category_name": "Rings",
        "category_type": "Gold",
    }
    patch.update(overrides)
    return products_service.create_product(repo, shop_id=shop_id, patch=patch)


@pytest.fixture(scope='function')
def ring_a(repo, shop_a, rates_a):
    """10g gold ring in Shop A priced at 71500."""
    return make_product(repo, shop_a.id)


@pytest.fixture(scope='function')
def chains_a(repo, shop_a, rates_a):
    """Group of 5 gold chains, 10g each, in Shop A."""
    return make_product(
        repo,
        shop_a.id,
        name="Gold Chain",
        weight=10.0,
        quantity=5,
        item_type="Group",
        category_name="Chains",
    )


def get_auth_token(user: User) -> str:
    """Helper to issue a session token for a user."""
    _session, token = create_session(user_id=user.id, user_agent="pytest")
    return token


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def owner_a_headers(owner_a):
    return auth_headers(get_auth_token(owner_a))


@pytest.fixture(scope='function')
def owner_b_headers(owner_b):
    return auth_headers(get_auth_token(owner_b))


@pytest.fixture(scope='function')
def manager_a_headers(manager_a):
    return auth_headers(get_auth_token(manager_a))


@pytest.fixture(scope='function')
def super_admin_headers(super_admin):
    return auth_headers(get_auth_token(super_admin))
