"""JWT inspection helpers.

토큰의 서명 검증은 인증 서비스의 책임입니다.
여기서는 만료 시각 판단과 사용자 정보 추출을 위해 claim만 읽습니다.
"""
from __future__ import annotations

import logging
import time
from typing import Any, Dict, Optional

import jwt
from jwt import InvalidTokenError

logger = logging.getLogger(__name__)


def decode_claims(token: Optional[str]) -> Optional[Dict[str, Any]]:
    """Return the unverified claims of ``token`` or None when malformed."""
    if not token:
        return None
    try:
        return jwt.decode(
            token,
            options={"verify_signature": False, "verify_exp": False},
        )
    except InvalidTokenError as exc:
        logger.debug("Cannot decode token claims: %s", exc)
        return None


def is_token_expired(token: Optional[str], now: Optional[float] = None) -> bool:
    """Check whether a token is expired.

    만료 시각이 현재 시각과 같으면 만료된 것으로 봅니다.
    토큰이 없거나, 디코딩할 수 없거나, exp claim이 없으면 만료로 처리합니다.
    """
    claims = decode_claims(token)
    if claims is None:
        return True

    exp = claims.get("exp")
    if not isinstance(exp, (int, float)):
        return True

    current = int(time.time() if now is None else now)
    return exp <= current


def get_user_from_token(token: Optional[str]) -> Optional[Dict[str, Any]]:
    """Extract the user identity carried by a token."""
    claims = decode_claims(token)
    if claims is None:
        return None
    return {
        "id": claims.get("sub"),
        "email": claims.get("email"),
        "role": claims.get("role"),
        "exp": claims.get("exp"),
        "iat": claims.get("iat"),
    }
