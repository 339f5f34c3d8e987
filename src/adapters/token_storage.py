"""Persistent key/value storage for auth tokens.

브라우저 localStorage 역할을 하는 작은 JSON 파일 저장소입니다.
- 인증 서비스 세션 영속화 (key: "auth-session")
- 레거시 백엔드 로그인 토큰 (key: "token")

경로가 없으면 메모리에만 보관합니다.
"""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class TokenStorage:
    """JSON file backed storage; in-memory when no path is configured."""

    def __init__(self, path: Optional[str] = None) -> None:
        self.path = Path(path) if path else None
        self._data: Dict[str, Any] = self._load()

    def _load(self) -> Dict[str, Any]:
        if not self.path or not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Ignoring unreadable token storage %s: %s", self.path, exc)
            return {}
        return data if isinstance(data, dict) else {}

    def _flush(self) -> None:
        if not self.path:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(self._data), encoding="utf-8")

    def get(self, key: str) -> Optional[Any]:
        return self._data.get(key)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value
        self._flush()

    def remove(self, key: str) -> None:
        if self._data.pop(key, None) is not None:
            self._flush()
