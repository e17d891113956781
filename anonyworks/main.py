# anonyworks/main.py
import logging
from typing import Callable, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from anonyworks.core.config import settings
from anonyworks.services.connection_broker import ConnectionBroker
from anonyworks.services.message_ingestor import MessageIngestor
from anonyworks.services.otp_service import OtpAuthenticator
from anonyworks.services.pit_registry import SessionRegistry
from anonyworks.services.scheduler_service import ExpirySweeper
from anonyworks.api.routes.auth import router as auth_router
from anonyworks.api.routes.pits import router as pits_router
from anonyworks.api.routes.live import router as live_router

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def create_app(
    session_factory: Optional[Callable[[], Session]] = None,
    start_sweeper: bool = True,
) -> FastAPI:
    if session_factory is None:
        from anonyworks.db.session import SessionLocal
        session_factory = SessionLocal

    app = FastAPI(title=settings.app_name)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[o.strip() for o in settings.cors_origins.split(",") if o.strip()],
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )

    # Components live on app.state and reach routes through anonyworks.api.deps
    registry = SessionRegistry()
    broker = ConnectionBroker()
    app.state.session_factory = session_factory
    app.state.registry = registry
    app.state.broker = broker
    app.state.otp = OtpAuthenticator()
    app.state.ingestor = MessageIngestor(registry, broker)
    app.state.sweeper = ExpirySweeper(session_factory)

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"detail": "Server error"})

    # Routers
    app.include_router(auth_router)
    app.include_router(pits_router)
    app.include_router(live_router)

    # Start expiry sweeper on app startup
    @app.on_event("startup")
    def startup_event():
        """Start expiry sweeper when app starts."""
        if not start_sweeper:
            return
        try:
            app.state.sweeper.start()
        except Exception as e:
            logger.warning(f"Failed to start expiry sweeper: {e}")

    # Stop sweeper on app shutdown
    @app.on_event("shutdown")
    def shutdown_event():
        """Stop expiry sweeper when app shuts down."""
        try:
            app.state.sweeper.stop()
        except Exception as e:
            logger.warning(f"Failed to stop expiry sweeper: {e}")

    @app.get("/health")
    def health():
        return {"ok": True}

    return app


configure_logging()
app = create_app()
