import pytest

from app import create_app
from config import Config
from models import db
from models.troop import Troop, TroopMember
from models.user import User
from security.bruteforce import init_login_guard
from security.password import hash_password

PASSWORD = "cookies2024"


class FakeClock:
    def __init__(self, start=1000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def app(tmp_path, clock):
    class TestConfig(Config):
        TESTING = True
        SQLALCHEMY_DATABASE_URI = "sqlite:///" + str(tmp_path / "test.db")
        BCRYPT_ROUNDS = 4
        LOGIN_RATE_MAX_REQUESTS = 1000

    app = create_app(TestConfig)
    init_login_guard(app, clock=clock)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_user(app):
    def _make(email, role="member", password=PASSWORD, **fields):
        user = User(email=email, password_hash=hash_password(password), role=role, **fields)
        db.session.add(user)
        db.session.commit()
        return user
    return _make


@pytest.fixture
def troop(app):
    t = Troop(troop_number="1234", troop_type="junior")
    db.session.add(t)
    db.session.commit()
    return t


@pytest.fixture
def add_member():
    def _add(troop, user, role="member", status="active", den=None):
        m = TroopMember(troop_id=troop.id, user_id=user.id, role=role, status=status, den=den)
        db.session.add(m)
        db.session.commit()
        return m
    return _add


@pytest.fixture
def login(client):
    def _login(email, password=PASSWORD):
        resp = client.post("/api/auth/login", json={"email": email, "password": password})
        assert resp.status_code == 200, resp.get_json()
        return resp
    return _login
