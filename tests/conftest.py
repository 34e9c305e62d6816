from datetime import timedelta

import pytest

from app import create_app
from models import db
from models.booking import Booking, BookingStatus
from models.db import utcnow
from models.service import Service
from models.user import User, Role
from security.password import hash_password

PASSWORD = "correct-horse-1"


@pytest.fixture
def app(tmp_path):
    app = create_app({
        "TESTING": True,
        "SQLALCHEMY_DATABASE_URI": "sqlite:///" + str(tmp_path / "test.db"),
        "BCRYPT_ROUNDS": 4,
    })
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def make_user(app):
    def _make(email, role=Role.CUSTOMER, is_active=True, full_name=None):
        user = User(
            email=email,
            password_hash=hash_password(PASSWORD),
            full_name=full_name or email.split("@")[0].upper(),
            role=role,
            is_active=is_active,
        )
        db.session.add(user)
        db.session.commit()
        return user
    return _make


@pytest.fixture
def customer(make_user):
    return make_user("c1@example.com")


@pytest.fixture
def other_customer(make_user):
    return make_user("c2@example.com")


@pytest.fixture
def employee(make_user):
    return make_user("e1@example.com", role=Role.EMPLOYEE)


@pytest.fixture
def other_employee(make_user):
    return make_user("e2@example.com", role=Role.EMPLOYEE)


@pytest.fixture
def admin(make_user):
    return make_user("admin@example.com", role=Role.ADMIN)


@pytest.fixture
def service(app):
    s = Service(id=42, name="Air conditioner repair", category="Appliance", price=500000)
    db.session.add(s)
    db.session.commit()
    return s


@pytest.fixture
def future():
    return utcnow() + timedelta(days=2)


@pytest.fixture
def make_booking(service, future):
    """Insert a booking directly in the given state, bypassing the lifecycle."""
    def _make(customer, status=BookingStatus.PENDING, employee=None, address="12 Le Loi"):
        b = Booking(
            service_id=service.id,
            customer_id=customer.id,
            employee_id=employee.id if employee else None,
            address=address,
            hire_at=future,
            status=status,
        )
        db.session.add(b)
        db.session.commit()
        return b
    return _make


class ApiClient:
    """Test client that carries the session cookie and echoes the CSRF token."""

    def __init__(self, client):
        self.client = client
        self.csrf = None

    def login(self, email, password=PASSWORD):
        resp = self.client.post("/auth/login", json={"email": email, "password": password})
        cookie = self.client.get_cookie("csrf_token")
        self.csrf = cookie.value if cookie else None
        return resp

    def _headers(self):
        return {"X-CSRF-Token": self.csrf} if self.csrf else {}

    def get(self, url, **kwargs):
        return self.client.get(url, **kwargs)

    def post(self, url, json=None):
        return self.client.post(url, json=json, headers=self._headers())

    def patch(self, url, json=None):
        return self.client.patch(url, json=json, headers=self._headers())


@pytest.fixture
def anonymous(app):
    return ApiClient(app.test_client())


@pytest.fixture
def login(app):
    def _login(user):
        api = ApiClient(app.test_client())
        resp = api.login(user.email)
        assert resp.status_code == 200, resp.get_json()
        return api
    return _login


def fetch(model, pk):
    """Reload a row from the database, dropping any cached state."""
    db.session.expire_all()
    return db.session.get(model, pk)
