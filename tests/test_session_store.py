"""Tests for the session state store.

이 모듈은 세션 store의 주요 동작을 테스트합니다:
1. 세션 초기화 (타임아웃 시 비인증 상태로 fail-safe)
2. 인증 서비스 이벤트 처리 정책
3. 로그인/회원가입/로그아웃
4. reducer 기반 상태 전이 (version 증가)

각 테스트는 Given-When-Then 패턴을 따릅니다.
"""
import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from src.adapters.identity_provider import AuthChangeEvent, IdentityProviderError
from src.auth.store import AuthState, Logout, SetLoading, SetSession, SessionStore, reduce
from src.models.session import Session
from src.models.user import UserView
from src.server.settings import settings
from tests.fakes import VALID_EMAIL, VALID_PASSWORD, VALID_USER_ID


def _session(fake_auth) -> Session:
    return Session.from_provider(fake_auth.issue_session())


@pytest.mark.asyncio
async def test_initialize_without_session(store):
    """저장된 세션이 없으면 비인증 상태로 로딩이 끝나야 함."""
    state = await store.initialize()

    assert state.loading is False
    assert state.is_authenticated is False
    assert state.user is None


@pytest.mark.asyncio
async def test_initialize_times_out_to_unauthenticated(provider, notifier):
    """세션 조회가 타임아웃되면 isAuthenticated=False, loading=False.

    Given: 인증 서비스가 응답하지 않고
    When: 초기화가 타임아웃을 넘기면
    Then: 무한 로딩 없이 비인증 상태가 되어야 함
    """
    async def _hang():
        await asyncio.sleep(10)

    store = SessionStore(provider, notifier, bootstrap_timeout=0.05)
    with patch.object(provider, "get_session", side_effect=_hang):
        state = await store.initialize()

    assert state.is_authenticated is False
    assert state.loading is False


def test_explicit_zero_bootstrap_timeout_is_kept(provider, notifier):
    assert SessionStore(provider, notifier, bootstrap_timeout=0).bootstrap_timeout == 0
    assert SessionStore(provider, notifier).bootstrap_timeout == settings.SESSION_BOOTSTRAP_TIMEOUT


@pytest.mark.asyncio
async def test_initialize_provider_error_fails_safe(provider, notifier):
    store = SessionStore(provider, notifier)
    with patch.object(provider, "get_session", AsyncMock(side_effect=IdentityProviderError("boom"))):
        state = await store.initialize()

    assert state.is_authenticated is False
    assert state.loading is False


@pytest.mark.asyncio
async def test_initialize_restores_existing_session(provider, fake_auth, store):
    provider._save_session(_session(fake_auth))

    state = await store.initialize()

    assert state.is_authenticated is True
    assert state.user.id == VALID_USER_ID


@pytest.mark.parametrize(
    "event",
    [
        AuthChangeEvent.INITIAL_SESSION.value,
        AuthChangeEvent.SIGNED_IN.value,
        AuthChangeEvent.TOKEN_REFRESHED.value,
    ],
)
def test_session_events_publish_user_from_session(store, fake_auth, event):
    """세션이 담긴 established/signed-in/refreshed 이벤트는 세션의 사용자 ID로 view-model을 만들어야 함."""
    session = _session(fake_auth)

    store.handle_auth_event(event, session)

    assert store.is_authenticated is True
    assert store.user.id == session.user_id
    assert store.user.name == "Reader"
    assert store.user.avatar_url == "https://img.test/reader.png"


def test_signed_in_without_session_is_ignored(store):
    store.handle_auth_event(AuthChangeEvent.SIGNED_IN.value, None)
    assert store.state.version == 0


def test_signed_out_clears_state(store, fake_auth):
    store.handle_auth_event(AuthChangeEvent.SIGNED_IN.value, _session(fake_auth))

    store.handle_auth_event(AuthChangeEvent.SIGNED_OUT.value, None)

    assert store.is_authenticated is False
    assert store.user is None
    assert store.session is None


@pytest.mark.parametrize(
    "event",
    [AuthChangeEvent.PASSWORD_RECOVERY.value, AuthChangeEvent.USER_UPDATED.value, "MFA_CHALLENGE"],
)
def test_informational_and_unknown_events_do_not_change_state(store, fake_auth, event):
    store.handle_auth_event(event, _session(fake_auth))

    assert store.state.version == 0
    assert store.is_authenticated is False


def test_display_name_falls_back_to_email(fake_auth):
    payload = fake_auth.issue_session()
    payload["user"]["user_metadata"] = {}

    user = UserView.from_session(Session.from_provider(payload))

    assert user.name == "reader"


def test_reducer_bumps_version_on_every_transition():
    state = AuthState()

    state = reduce(state, SetLoading(loading=True))
    state = reduce(state, SetSession())
    state = reduce(state, Logout())

    assert state.version == 3
    assert state.loading is False
    assert state.is_authenticated is False


def test_dispatch_notifies_listeners_and_unsubscribe(store):
    seen = []
    unsubscribe = store.subscribe(seen.append)

    store.dispatch(SetSession())
    unsubscribe()
    store.dispatch(Logout())

    assert len(seen) == 1
    assert seen[0].version == 1


@pytest.mark.asyncio
async def test_login_with_valid_credentials(store, notifier):
    """End-to-end: 올바른 자격 증명으로 로그인.

    Given: store가 시작되어 인증 서비스 이벤트를 구독 중이고
    When: 올바른 이메일/비밀번호로 로그인하면
    Then: isAuthenticated=True, 사용자 ID가 일치해야 함
    """
    await store.start()

    await store.login(VALID_EMAIL, VALID_PASSWORD)

    assert store.is_authenticated is True
    assert store.user.id == VALID_USER_ID
    assert [n.message for n in notifier.drain()] == ["Login successful!"]
    store.stop()


@pytest.mark.asyncio
async def test_login_with_invalid_credentials(store, notifier):
    """End-to-end: 잘못된 자격 증명은 비인증 상태를 유지하고 인증 서비스의 메시지로 알림."""
    await store.start()

    with pytest.raises(IdentityProviderError) as exc_info:
        await store.login(VALID_EMAIL, "wrong-password")

    assert exc_info.value.message == "Invalid login credentials"
    assert store.is_authenticated is False
    notifications = notifier.drain()
    assert len(notifications) == 1
    assert notifications[0].level == "error"
    assert notifications[0].message == "Invalid login credentials"
    store.stop()


@pytest.mark.asyncio
async def test_register_requiring_email_confirmation(store, notifier, fake_auth):
    """이메일 확인이 필요한 회원가입은 오류가 아닌 별도 성공 케이스."""
    fake_auth.confirm_email = True
    await store.start()

    result = await store.register("new@example.com", "secret123", name="New")

    assert result.confirmation_required is True
    assert result.session is None
    assert store.is_authenticated is False
    assert notifier.drain()[-1].message == "Please check your email to confirm your account!"
    store.stop()


@pytest.mark.asyncio
async def test_register_auto_confirmed_publishes_session(store, notifier):
    await store.start()

    result = await store.register("new@example.com", "secret123", name="New Person")

    assert result.confirmation_required is False
    assert store.is_authenticated is True
    assert store.user.name == "New Person"
    assert notifier.drain()[-1].message == "Registration successful!"
    store.stop()


@pytest.mark.asyncio
async def test_register_duplicate_surfaces_provider_message(store, notifier):
    with pytest.raises(IdentityProviderError):
        await store.register(VALID_EMAIL, "secret123")

    assert notifier.drain()[-1].message == "User already registered"


@pytest.mark.asyncio
async def test_logout_clears_state_even_when_provider_fails(store, provider, notifier):
    await store.start()
    await store.login(VALID_EMAIL, VALID_PASSWORD)

    with patch.object(provider, "sign_out", AsyncMock(side_effect=IdentityProviderError("down"))):
        await store.logout()

    assert store.is_authenticated is False
    assert store.user is None
    assert notifier.drain()[-1].message == "Logged out successfully"
    store.stop()


@pytest.mark.asyncio
async def test_token_accessors_read_through_provider(store):
    await store.start()
    assert await store.get_access_token() is None
    assert await store.is_session_valid() is False

    session = await store.login(VALID_EMAIL, VALID_PASSWORD)

    assert await store.get_access_token() == session.access_token
    assert await store.get_refresh_token() == session.refresh_token
    assert await store.is_session_valid() is True
    store.stop()


@pytest.mark.asyncio
async def test_refresh_failure_clears_state(store, fake_auth):
    await store.start()
    await store.login(VALID_EMAIL, VALID_PASSWORD)
    fake_auth.fail_refresh = True

    result = await store.refresh_session()

    assert result is None
    assert store.is_authenticated is False
    store.stop()


@pytest.mark.asyncio
async def test_update_user_keeps_session(store):
    await store.start()
    await store.login(VALID_EMAIL, VALID_PASSWORD)
    session = store.session

    store.update_user(UserView(id=VALID_USER_ID, name="Renamed"))

    assert store.session == session
    assert store.user.name == "Renamed"
    store.stop()


@pytest.mark.asyncio
async def test_update_profile_metadata_round_trips_through_provider(store):
    await store.start()
    await store.login(VALID_EMAIL, VALID_PASSWORD)

    user = await store.update_profile_metadata({"name": "Updated"})

    assert user.name == "Updated"
    assert store.user.name == "Updated"
    store.stop()


@pytest.mark.asyncio
async def test_update_profile_metadata_requires_session(store):
    await store.start()

    with pytest.raises(IdentityProviderError):
        await store.update_profile_metadata({"name": "Updated"})

    assert store.user is None
    store.stop()


@pytest.mark.asyncio
async def test_stop_cancels_provider_subscription(store, provider):
    await store.start()
    store.stop()

    await provider.sign_in_with_password(VALID_EMAIL, VALID_PASSWORD)

    assert store.is_authenticated is False


def test_login_with_oauth_returns_authorize_url(store):
    url = store.login_with_oauth("github", redirect_to="http://localhost:8000/auth/callback")

    assert url.startswith("https://auth.test/auth/v1/authorize?")
    assert "provider=github" in url
    assert "prompt=consent" in url
