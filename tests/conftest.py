import pytest

from order_desk.app_container import AppContainer
from order_desk.main import create_app
from order_desk.models import DeliverySettings, Product


ADMIN_EMAIL = 'admin@orderdesk.local'
ADMIN_PASSWORD = 'admin123'
COURIER_EMAIL = 'courier@orderdesk.local'
COURIER_PASSWORD = 'courier123'


@pytest.fixture
def app(tmp_path):
    app = create_app({
        'DATA_DIR': str(tmp_path),
        'SECRET_KEY': 'test-secret',
        'PRODUCTION_MODE': False,
        'TESTING': True,
    })
    yield app
    AppContainer.reset_instance()


@pytest.fixture
def client(app):
    with app.test_client() as c:
        yield c


@pytest.fixture
def container(app):
    return app.extensions['order_desk']


def _login(client, email, password):
    r = client.post('/api/auth/login', json={'email': email, 'password': password})
    assert r.status_code == 200, r.get_json()
    return {'Authorization': f"Bearer {r.get_json()['token']}"}


@pytest.fixture
def admin_headers(client):
    return _login(client, ADMIN_EMAIL, ADMIN_PASSWORD)


@pytest.fixture
def courier_headers(client):
    return _login(client, COURIER_EMAIL, COURIER_PASSWORD)


@pytest.fixture
def services(tmp_path):
    """Contenedor sin Flask, con el catálogo de ejemplo cargado."""
    AppContainer.reset_instance()
    c = AppContainer(str(tmp_path), secret_key='test-secret')
    c.product_service.seed_sample_products()
    yield c
    AppContainer.reset_instance()


@pytest.fixture
def catalog():
    return {
        '1': Product.from_dict({'id': '1', 'name': 'NIRVAAN 5KG', 'price': 10000}),
        '2': Product.from_dict({'id': '2', 'name': 'NIRVAAN 2.5KG', 'price': 5500}),
        '3': Product.from_dict({'id': '3', 'name': 'NIRVAAN 1KG', 'price': 2500}),
    }


@pytest.fixture
def settings():
    return DeliverySettings()


@pytest.fixture
def order_payload():
    def build(**overrides):
        payload = {
            'fullName': 'Nimal Perera',
            'address': '12 Main St, Colombo',
            'mobile': '0771234567',
            'products': [{'productId': '3', 'quantity': 2}],
        }
        payload.update(overrides)
        return payload
    return build
