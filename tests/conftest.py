import os
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# account_api.main builds settings at import time
os.environ.setdefault("APP_ENV", "test")

from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402
from sqlmodel import Session, SQLModel, create_engine  # noqa: E402

from account_api.core.config import Settings, get_settings  # noqa: E402
from account_api.core.security import hash_password  # noqa: E402
from account_api.db.session import create_all_tables, get_session  # noqa: E402
from account_api.models.user import User  # noqa: E402
from account_api.services import media  # noqa: E402
from account_api.services.token_service import TokenManager  # noqa: E402


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        APP_ENV="test",
        ACCESS_TOKEN_SECRET="test-access-secret",
        REFRESH_TOKEN_SECRET="test-refresh-secret",
        ACCESS_TOKEN_EXPIRE_MINUTES=15,
        REFRESH_TOKEN_EXPIRE_DAYS=10,
        BCRYPT_ROUNDS=4,
        CLOUDINARY_CLOUD_NAME="demo",
        CLOUDINARY_API_KEY="key",
        CLOUDINARY_API_SECRET="secret",
        UPLOAD_TEMP_DIR=str(tmp_path / "temp"),
    )


@pytest.fixture
def db_engine():
    # In-memory SQLite shared across threads (TestClient runs sync routes in a pool).
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    create_all_tables(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture
def db_session(db_engine):
    with Session(db_engine) as s:
        yield s


@pytest.fixture
def token_manager(settings):
    return TokenManager(settings)


class FakeCloudinary:
    def __init__(self):
        self.fail = False
        self.calls: list[dict] = []

    def upload(self, path, **options):
        self.calls.append({"path": path, **options})
        if isinstance(self.fail, Exception):
            raise self.fail
        if self.fail:
            raise media.cloudinary.exceptions.Error("upload rejected")
        name = Path(path).name
        return {
            "url": f"http://res.cloudinary.com/demo/image/upload/{name}",
            "secure_url": f"https://res.cloudinary.com/demo/image/upload/{name}",
        }


@pytest.fixture(autouse=True)
def fake_cloudinary(monkeypatch):
    """No test ever talks to the real media host."""
    fake = FakeCloudinary()
    monkeypatch.setattr(media.cloudinary.uploader, "upload", fake.upload)
    return fake


@pytest.fixture
def make_user(db_session, settings):
    def _make_user(
        username: str = "bob",
        email: str = "bob@x.com",
        password: str = "hunter22",
        full_name: str = "Bob Builder",
    ) -> User:
        user = User(
            username=username,
            email=email,
            full_name=full_name,
            avatar="https://res.cloudinary.com/demo/image/upload/bob.png",
            password=hash_password(password, rounds=settings.bcrypt_rounds),
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make_user


@pytest.fixture
def app(settings, db_session):
    from account_api.main import app as fastapi_app

    def override_get_session():
        yield db_session

    fastapi_app.dependency_overrides[get_settings] = lambda: settings
    fastapi_app.dependency_overrides[get_session] = override_get_session
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()


@pytest.fixture
def client(app):
    # https so the Secure auth cookies round-trip through the cookie jar
    with TestClient(app, base_url="https://testserver") as c:
        yield c


def register(client, *, username="alice", email="alice@x.com", password="secret123",
             full_name="Alice Liddell", avatar=True, cover_image=False):
    files = {}
    if avatar:
        files["avatar"] = ("avatar.png", b"\x89PNG fake avatar", "image/png")
    if cover_image:
        files["coverImage"] = ("cover.jpg", b"fake cover", "image/jpeg")
    data = {"fullName": full_name, "email": email, "username": username, "password": password}
    return client.post("/api/v1/users/register", data=data, files=files or None)


def assert_error_shape(res, status_code: int):
    assert res.status_code == status_code
    body = res.json()
    assert body["statusCode"] == status_code
    assert body["success"] is False
    assert body["data"] is None
    assert isinstance(body["message"], str) and body["message"]
    assert isinstance(body["errors"], list)
    return body
