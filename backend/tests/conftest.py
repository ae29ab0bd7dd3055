"""
Pytest fixtures for VendasControl backend tests.

Each test gets its own application with a fresh in-memory SQLite database.
"""

import pytest

from vendascontrol import create_app
from vendascontrol.extensions import db
from vendascontrol.services import document_store as store
from vendascontrol.services.auth_service import create_user


@pytest.fixture(scope='function')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'STOCK_RETRY_BACKOFF': 0,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def fresh(app):
    """Read a document after requests committed through another session."""
    def _read(collection, doc_id):
        db.session.expire_all()
        return store.get_document(collection, doc_id)
    return _read


@pytest.fixture(scope='function')
def customer(app):
    customer_id = store.new_document_id()
    store.set_document(store.CUSTOMERS, customer_id, {
        "id": customer_id,
        "name": "Maria Souza",
        "email": "maria@example.com",
        "phone": "(11) 98765-4321",
        "document": "123.456.789-00",
        "address": "Rua das Flores, 100",
    })
    return customer_id


@pytest.fixture(scope='function')
def make_product(app):
    def _make(name="Tela LCD", quantity=5, price=10.0, product_type="piece"):
        product_id = store.new_document_id()
        data = {
            "id": product_id,
            "name": name,
            "description": f"{name} original",
            "price": price,
            "cost": round(price / 2, 2),
            "type": product_type,
        }
        if product_type == "piece":
            data["quantity"] = quantity
        store.set_document(store.PRODUCTS, product_id, data)
        return product_id
    return _make


@pytest.fixture(scope='function')
def make_budget(app):
    """Budget written straight into the store, with any status."""
    def _make(customer_id, items, status="pending"):
        budget_id = store.new_document_id()
        store.set_document(store.BUDGETS, budget_id, {
            "id": budget_id,
            "customerId": customer_id,
            "items": items,
            "totalAmount": sum(i["quantity"] * i["unitPrice"] for i in items),
            "status": status,
            "budgetDate": "2026-10-01T12:00:00Z",
            "validUntil": "2026-10-31T00:00:00Z",
        })
        return budget_id
    return _make


@pytest.fixture(scope='function')
def admin_user(app):
    return create_user("Admin", "admin@test.local", "admin123", role="admin")


@pytest.fixture(scope='function')
def seller_user(app):
    return create_user("Vendedor", "seller@test.local", "seller123", role="seller")


def get_auth_token(client, email: str, password: str) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/api/auth/login', json={
        'email': email,
        'password': password
    })
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def admin_headers(client, admin_user):
    return auth_headers(get_auth_token(client, "admin@test.local", "admin123"))


@pytest.fixture(scope='function')
def seller_headers(client, seller_user):
    return auth_headers(get_auth_token(client, "seller@test.local", "seller123"))
