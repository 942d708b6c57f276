import pytest
from fastapi.testclient import TestClient

from booking.core import config
from booking.main import create_app
from booking.models.profile import ADMIN_ROLE
from booking.services.backend import BackendClient

DEFAULT_PASSWORD = 'correct-horse-battery'


@pytest.fixture
def backend():
    backend_client = BackendClient.from_url('sqlite:///:memory:', timeout_seconds=5)
    backend_client.create_schema()
    try:
        yield backend_client
    finally:
        backend_client.close()


@pytest.fixture
def app(backend):
    return create_app(backend=backend)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def sign_in(client, backend):
    """Register an account, log it in and return the cookie header carrying its session."""

    def _sign_in(email: str, role: str = 'user', password: str = DEFAULT_PASSWORD) -> dict[str, str]:
        response = client.post(
            '/auth/register',
            json={'email': email, 'password': password, 'firstName': 'Test', 'lastName': 'User'},
        )
        assert response.status_code == 201, response.text

        if role == ADMIN_ROLE:
            backend.profiles.set_role(response.json()['id'], ADMIN_ROLE)

        response = client.post('/auth/login', json={'email': email, 'password': password})
        assert response.status_code == 200, response.text
        token = response.cookies[config.SESSION_COOKIE_NAME]
        client.cookies.clear()
        return {'cookie': f'{config.SESSION_COOKIE_NAME}={token}'}

    return _sign_in
