"""Pytest configuration and fixtures.

이 모듈은 모든 테스트에서 공유되는 pytest fixture들을 정의합니다.
외부 서비스(인증 서비스, 블로그 백엔드)는 httpx.MockTransport 위의
in-memory fake(tests/fakes.py)로 대체하여, 실제 네트워크 호출 없이 wire 수준에서 테스트합니다.

주요 Fixture:
- fake_auth: GoTrue 호환 인증 서비스 fake
- provider: fake_auth에 연결된 IdentityProviderClient
- notifier: 알림(토스트) 수집기
- store: 세션 store (시작 전 상태)
- fake_blog: 블로그 REST 백엔드 fake
- services: 위 구성요소를 묶은 AppServices
- client: FastAPI 테스트 클라이언트 (lifespan 실행)
"""
import httpx
import pytest
from fastapi.testclient import TestClient

from src.adapters.identity_provider import IdentityProviderClient
from src.adapters.token_storage import TokenStorage
from src.auth.store import SessionStore
from src.server.main import create_app
from src.server.services import AppServices
from src.server.settings import settings
from src.services.notifications import NotificationCenter
from tests.fakes import (
    AUTH_URL,
    BLOG_URL,
    VALID_EMAIL,
    VALID_PASSWORD,
    FakeAuthProvider,
    FakeBlogBackend,
)


@pytest.fixture(autouse=True)
def _test_settings():
    """테스트 중에는 자동 갱신 스케줄러를 끄고 인증 서비스 URL을 고정합니다."""
    original = (settings.AUTO_REFRESH_TOKEN, settings.AUTH_PROVIDER_URL)
    settings.AUTO_REFRESH_TOKEN = False
    settings.AUTH_PROVIDER_URL = AUTH_URL
    yield
    settings.AUTO_REFRESH_TOKEN, settings.AUTH_PROVIDER_URL = original


@pytest.fixture
def fake_auth() -> FakeAuthProvider:
    return FakeAuthProvider()


@pytest.fixture
def provider(fake_auth) -> IdentityProviderClient:
    return IdentityProviderClient(
        base_url=AUTH_URL,
        anon_key="anon-key",
        storage=TokenStorage(),
        transport=httpx.MockTransport(fake_auth.handler),
    )


@pytest.fixture
def notifier() -> NotificationCenter:
    return NotificationCenter()


@pytest.fixture
def store(provider, notifier) -> SessionStore:
    return SessionStore(provider, notifier)


@pytest.fixture
def fake_blog() -> FakeBlogBackend:
    return FakeBlogBackend()


@pytest.fixture
def services(provider, notifier, fake_blog) -> AppServices:
    services = AppServices(
        provider,
        notifier=notifier,
        blog_transport=httpx.MockTransport(fake_blog.handler),
    )
    services.blog_client.base_url = BLOG_URL
    services.blog_client.legacy_storage = TokenStorage()
    return services


@pytest.fixture
def client(services):
    """FastAPI 테스트 클라이언트를 생성합니다.

    설명:
        - lifespan을 실행하여 세션 store를 시작합니다 (구독 + 초기화)
        - 외부 서비스는 모두 fake로 대체됩니다
    """
    app = create_app(services)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def logged_in_client(client):
    """로그인이 완료된 테스트 클라이언트."""
    response = client.post("/login", json={"email": VALID_EMAIL, "password": VALID_PASSWORD})
    assert response.status_code == 200
    return client
