"""Application settings loaded from environment variables."""
from pydantic_settings import BaseSettings
from typing import List, Optional


class Settings(BaseSettings):
    """Application configuration settings."""

    # Server Configuration
    SERVER_HOST: str = "0.0.0.0"
    SERVER_PORT: int = 8000
    LOG_LEVEL: str = "INFO"

    # Blog API (REST backend)
    BLOG_API_URL: str = "http://localhost:3002/api"
    BLOG_API_TIMEOUT: float = 10.0
    # GET 요청 중 토큰이 필요한 경로 (콤마 구분, prefix 매칭)
    BLOG_API_SENSITIVE_READ_PATHS: str = "/auth/me,/posts/user/my-posts"

    # Identity provider (GoTrue 호환 인증 서비스)
    AUTH_PROVIDER_URL: Optional[str] = None
    AUTH_PROVIDER_ANON_KEY: Optional[str] = None
    AUTH_PROVIDER_TIMEOUT: float = 10.0
    AUTH_REDIRECT_URL: str = "http://localhost:8000/auth/callback"
    AUTH_OAUTH_DEFAULT_PROVIDER: str = "google"

    # Session management
    SESSION_BOOTSTRAP_TIMEOUT: float = 5.0
    SESSION_RETRY_ATTEMPTS: int = 3
    SESSION_STORAGE_PATH: Optional[str] = None  # 미설정 시 메모리에만 보관
    LEGACY_TOKEN_STORAGE_PATH: Optional[str] = None

    # Automatic token refresh
    AUTO_REFRESH_TOKEN: bool = True
    SESSION_REFRESH_INTERVAL_SECONDS: int = 60
    SESSION_REFRESH_SKEW_SECONDS: int = 60

    # Navigation targets
    LANDING_PATH: str = "/dashboard"
    LOGIN_PATH: str = "/login"

    class Config:
        env_file = ".env"
        case_sensitive = True

    def sensitive_read_paths(self) -> List[str]:
        return [
            path.strip()
            for path in self.BLOG_API_SENSITIVE_READ_PATHS.split(",")
            if path.strip()
        ]


settings = Settings()
