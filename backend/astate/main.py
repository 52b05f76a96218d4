from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from astate.api.logs import router as logs_router
from astate.api.recording import router as recording_router
from astate.api.records import router as records_router
from astate.api.store import router as store_router
from astate.core.config import Settings, settings
from astate.core.logs import configure_logging
from astate.db import Base, SessionLocal, engine
from astate.engine.extremes import ExtremumTracker
from astate.engine.notifications import NotificationDebouncer
from astate.engine.notifiers import WebhookNotifier, build_notifier
from astate.engine.recording import RecordingPolicy
from astate.engine.session import TrackingSession
from astate.engine.sync import SyncFetcher
from astate.models.location_record import LocationRecord  # noqa: F401  (import ensures table is registered)
from astate.models.minmax_record import MinMaxRecord  # noqa: F401
from astate.sources.authorization import AuthorizationStatus
from astate.store.base import RecordStore
from astate.store.http import HttpRecordStore
from astate.store.sql import SqlRecordStore


def build_store(cfg: Settings) -> RecordStore:
    if cfg.store_url:
        return HttpRecordStore(cfg.store_url, timeout=cfg.store_timeout_s)
    return SqlRecordStore(SessionLocal, max_page_size=cfg.page_size)


def build_session(cfg: Settings, store: RecordStore) -> TrackingSession:
    return TrackingSession(
        store=store,
        policy=RecordingPolicy(cfg.recording_interval_s, cfg.min_record_distance_m),
        tracker=ExtremumTracker(store, cfg.minmax_record_id),
        debouncer=NotificationDebouncer(build_notifier(cfg.notify_webhook_url), cfg.notification_window_s),
        authorization=AuthorizationStatus(cfg.default_authorization),
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    store = build_store(settings)
    session = build_session(settings, store)
    await session.start()
    app.state.session = session
    app.state.fetcher = SyncFetcher(store, settings.page_size)
    try:
        yield
    finally:
        await session.close()
        notifier = session.debouncer.notifier
        if isinstance(notifier, WebhookNotifier):
            await notifier.drain()
        await store.aclose()


configure_logging(settings.log_level, settings.log_buffer_size, settings.timezone)

app = FastAPI(lifespan=lifespan)

# Allow CORS for local frontend
origins = ["*"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Create DB tables (location_records, minmax_records) on startup
Base.metadata.create_all(bind=engine)

app.include_router(recording_router)
app.include_router(records_router)
app.include_router(store_router)
app.include_router(logs_router)


@app.get("/")
def root():
    return {"message": "Astate backend is running"}
