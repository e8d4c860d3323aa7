"""FastAPI application wiring for the account service."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from functools import partial

from fastapi import FastAPI, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from psycopg_pool import ConnectionPool

from .api.routes import router as v1_router
from .config import Settings, get_settings
from .domain.service import AccountService
from .domain.validation import AccountValidator
from .notifications.mail import SmtpMailTransport
from .notifications.recovery import RecoveryNotifier
from .notifications.templating import JinjaTemplateRenderer
from .repository import AccountRepository

logger = logging.getLogger(__name__)

settings = get_settings()


def build_notifier(config: Settings) -> RecoveryNotifier:
    """Assemble the recovery notifier from the configured templates and SMTP relay."""
    return RecoveryNotifier(
        JinjaTemplateRenderer(config.template_dir),
        SmtpMailTransport(config.smtp_host, config.smtp_port, timeout=config.smtp_timeout_seconds),
        sender_email=config.email_noreply,
        sender_name=config.email_name,
        site_name=config.site_name,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialise shared resources (Postgres pool, collaborators) for the app lifecycle."""
    pool = ConnectionPool(settings.database_url, open=False)
    pool.open()
    repository = AccountRepository(pool)
    if settings.auto_migrate:
        logger.info("ensuring accounts schema")
        repository.ensure_schema()
    app.state.pool = pool
    app.state.account_service_factory = partial(
        AccountService,
        repository,
        AccountValidator(),
        build_notifier(settings),
        max_username_suffix=settings.username_max_suffix,
        register_max_attempts=settings.register_max_attempts,
    )
    try:
        yield
    finally:
        pool.close()


app = FastAPI(title=settings.app_name, version=settings.version, lifespan=lifespan)


@app.get("/healthz", tags=["health"])
def healthz() -> dict[str, str]:
    """Return a minimal readiness indicator used by orchestration systems."""
    return {"status": "ok"}


@app.get("/metrics", tags=["health"])
def metrics() -> Response:
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


app.include_router(v1_router)
