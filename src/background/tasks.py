"""Background tasks for session maintenance.

백그라운드 작업:
1. session_refresh_task: 만료가 임박한 세션을 미리 갱신 (인증 서비스의 auto-refresh)

주의:
- 갱신 실패 시 store가 세션을 정리하며, 다음 요청은 로그인 화면으로 안내됩니다.
"""
import logging

from src.auth.store import SessionStore
from src.server.settings import settings

logger = logging.getLogger(__name__)


async def session_refresh_task(store: SessionStore) -> bool:
    """만료 임박 세션 갱신

    Returns:
        갱신을 시도했으면 True
    """
    session = store.session
    if session is None:
        logger.debug("No session to refresh")
        return False

    if not session.is_expired(settings.SESSION_REFRESH_SKEW_SECONDS):
        return False

    logger.info("Session for user %s expires at %s; refreshing", session.user_id, session.expires_at)
    refreshed = await store.refresh_session()
    if refreshed is None:
        logger.warning("Automatic session refresh failed; session cleared")
    return True
