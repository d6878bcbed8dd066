"""Process entry point - composes the monitoring engine and serves /health."""
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Optional

from fastapi import FastAPI
from sqlalchemy.ext.asyncio import AsyncEngine

from .config import Settings, get_database_url
from .database import create_db_engine, create_session_factory, init_db, close_db
from .store import MonitorStore
from .services.checker import CheckerService
from .services.email_sender import EmailConfig, EmailSenderService
from .services.notifier import TransitionNotifier
from .services.pinger import create_pinger
from .services.push_sender import PushConfig, PushSender
from .services.recorder import ResultRecorder
from .services.scheduler import SchedulerService

logger = logging.getLogger(__name__)


@dataclass
class MonitoringEngine:
    """Every long-lived service of the process, built once at startup."""
    db_engine: AsyncEngine
    store: MonitorStore
    push_sender: PushSender
    scheduler: SchedulerService


def build_engine(settings: Settings) -> MonitoringEngine:
    """Construct the services and wire them together."""
    db_engine = create_db_engine(get_database_url(settings))
    store = MonitorStore(create_session_factory(db_engine))

    checker = CheckerService(
        pinger=create_pinger(settings.ping_backend),
        verify_tls=settings.http_verify_tls,
    )
    push_sender = PushSender(PushConfig(
        key_path=settings.apns_key_path,
        key_id=settings.apns_key_id,
        team_id=settings.apns_team_id,
        bundle_id=settings.apns_bundle_id,
        use_sandbox=settings.apns_use_sandbox,
    ))
    email_sender = EmailSenderService(EmailConfig(
        host=settings.smtp_host,
        port=settings.smtp_port,
        username=settings.smtp_username,
        password=settings.smtp_password,
        use_tls=settings.smtp_use_tls,
        from_address=settings.alert_email_from,
        to_address=settings.alert_email_to,
    ))

    scheduler = SchedulerService(
        store=store,
        checker=checker,
        recorder=ResultRecorder(store),
        notifier=TransitionNotifier(store, push_sender, email_sender),
        tick_seconds=settings.tick_seconds,
        max_concurrent_checks=settings.max_concurrent_checks,
        shutdown_grace_seconds=settings.shutdown_grace_seconds,
    )
    return MonitoringEngine(
        db_engine=db_engine,
        store=store,
        push_sender=push_sender,
        scheduler=scheduler,
    )


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Create the FastAPI application that hosts the engine."""
    settings = settings or Settings()
    configure_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan - startup and shutdown."""
        logger.info("Starting Uptovia monitoring engine")
        engine = build_engine(settings)
        app.state.engine = engine

        await init_db(engine.db_engine, settings.data_path)
        logger.info("Database initialized")

        engine.push_sender.configure()
        engine.scheduler.start()

        yield

        await engine.scheduler.stop()
        await close_db(engine.db_engine)
        logger.info("Shutdown complete")

    app = FastAPI(
        title="Uptovia",
        description="Uptime monitoring engine - HTTP(S), TCP, DNS and ping checks",
        version="1.0.0",
        lifespan=lifespan,
    )

    @app.get("/health")
    async def health_check():
        engine: Optional[MonitoringEngine] = getattr(app.state, "engine", None)
        return {
            "status": "healthy",
            "scheduler": engine.scheduler.status() if engine else None,
            "push_configured": engine.push_sender.is_configured if engine else False,
        }

    return app


def configure_logging(level: str):
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


# Create the application instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=Settings().web_port)
