"""FastAPI application entry point."""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src.adapters.blog_api import BlogApiError, ClientError, NetworkError, ServerError, SessionExpiredError
from src.adapters.identity_provider import IdentityProviderError
from src.server.deps import LoginRequiredError
from src.server.routers import auth, health, posts, profile
from src.server.schemas import ViewResponse
from src.server.services import AppServices
from src.server.settings import settings

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

logger = logging.getLogger(__name__)


def _error_view(
    request: Request,
    status_code: int,
    message: Optional[str] = None,
    redirect: Optional[str] = None,
) -> JSONResponse:
    services: AppServices = request.app.state.services
    if message:
        services.notifier.error(message)
    body = ViewResponse(notifications=services.notifier.drain(), redirect=redirect)
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(LoginRequiredError)
    async def _login_required(request: Request, exc: LoginRequiredError):
        return _error_view(request, 401, redirect=settings.LOGIN_PATH)

    @app.exception_handler(SessionExpiredError)
    async def _session_expired(request: Request, exc: SessionExpiredError):
        # 알림은 HTTP 클라이언트의 on_session_expired 훅이 이미 추가함
        return _error_view(request, 401, redirect=settings.LOGIN_PATH)

    @app.exception_handler(ClientError)
    async def _client_error(request: Request, exc: ClientError):
        return _error_view(request, exc.status_code or 400, exc.message)

    @app.exception_handler(ServerError)
    async def _server_error(request: Request, exc: ServerError):
        return _error_view(request, 502, exc.message)

    @app.exception_handler(NetworkError)
    async def _network_error(request: Request, exc: NetworkError):
        return _error_view(request, 503, "Blog service is unreachable. Please try again later.")

    @app.exception_handler(BlogApiError)
    async def _blog_api_error(request: Request, exc: BlogApiError):
        return _error_view(request, 500, exc.message)

    @app.exception_handler(IdentityProviderError)
    async def _identity_provider_error(request: Request, exc: IdentityProviderError):
        # login/register는 store가 이미 알림을 추가함
        return _error_view(request, 400)


def create_app(services: Optional[AppServices] = None) -> FastAPI:
    """Build the FastAPI app around a services container."""

    # FastAPI 생명주기 관리
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """앱 시작/종료 시 실행되는 코드"""
        logger.info("Starting application...")
        await app.state.services.startup()
        logger.info("Session store initialized")

        yield

        logger.info("Shutting down application...")
        app.state.services.shutdown()
        logger.info("Session store stopped")

    app = FastAPI(
        title="Blog Client",
        description="Blog front end: session management, OAuth callback and post views",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.services = services or AppServices()

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure appropriately for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    _register_exception_handlers(app)

    # Include routers
    app.include_router(health.router)
    app.include_router(auth.router)
    app.include_router(posts.router)
    app.include_router(profile.router)

    @app.get("/")
    async def root():
        """Root endpoint.

        Returns:
            Welcome message with API info
        """
        return {
            "message": "Blog Client",
            "version": "1.0.0",
            "docs": "/docs"
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "src.server.main:app",
        host=settings.SERVER_HOST,
        port=settings.SERVER_PORT,
        reload=True
    )
