"""Pytest configuration and fixtures."""

import json
import os

os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("SARVAM_API_KEY", "test-key")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret")

import httpx  # noqa: E402
import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import Session, sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from app.database import Base, get_db  # noqa: E402
from app.models.message import Message  # noqa: E402,F401
from app.models.user import User  # noqa: E402,F401
from app.services.auth import AuthService  # noqa: E402
from app.services.sarvam import SarvamClient, reset_sarvam_client  # noqa: E402

# Tiny RIFF header, enough to stand in for synthesized audio
TTS_AUDIO_B64 = "UklGRiQAAABXQVZF"


class FakeSarvam:
    """Stands in for the Sarvam AI API behind an ``httpx.MockTransport``.

    Responses are keyed by path; every request is recorded.
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.responses: dict[str, tuple[int, object]] = {
            "/speech-to-text": (200, {"transcript": "hello", "language_code": "en", "confidence": 0.9}),
            "/translate": (200, {"translated_text": "hello there"}),
            "/text-to-speech": (200, {"audios": [TTS_AUDIO_B64]}),
        }

    def respond(self, path: str, body: object, status: int = 200) -> None:
        self.responses[path] = (status, body)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        status, body = self.responses[request.url.path]
        if isinstance(body, str):
            return httpx.Response(status, text=body)
        return httpx.Response(status, json=body)

    def calls(self, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path == path]

    def json_body(self, path: str, index: int = -1) -> dict:
        return json.loads(self.calls(path)[index].content)


@pytest.fixture(name="sarvam")
def sarvam_fixture():
    """Route the shared Sarvam client to a fake provider."""
    fake = FakeSarvam()
    reset_sarvam_client(
        SarvamClient(api_key="test-key", base_url="https://sarvam.test", transport=httpx.MockTransport(fake.handler))
    )
    yield fake
    reset_sarvam_client(None)


@pytest.fixture(name="db_session")
def db_session_fixture():
    """Create an in-memory SQLite database for tests."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    testing_session_local = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = testing_session_local()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(name="api")
def api_fixture(db_session: Session):
    """The app with its DB dependency overridden and rate limiting disabled."""
    from app.rate_limit import limiter
    from main import app

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    limiter.enabled = False
    yield app
    limiter.enabled = True
    app.dependency_overrides.clear()


@pytest.fixture(name="client")
def client_fixture(api):
    """Create a test client for the overridden app."""
    with TestClient(api) as c:
        yield c


@pytest.fixture(name="test_user")
def test_user_fixture(db_session: Session):
    """Create a test user and return (user_data, token)."""
    from app.services.jwt import get_jwt_service

    auth_service = AuthService()
    result = auth_service.register(db_session, "test@example.com", "password123", "Test User")

    jwt_service = get_jwt_service()
    token = jwt_service.create_token(
        user_id=result.user_id,
        email=result.email,
        display_name=result.display_name,
    )

    return {
        "user_id": result.user_id,
        "email": result.email,
        "display_name": result.display_name,
        "token": token,
    }


@pytest.fixture(name="auth_headers")
def auth_headers_fixture(test_user: dict) -> dict:
    return {"Authorization": f"Bearer {test_user['token']}"}
