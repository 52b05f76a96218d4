from fastapi import Request

from astate.engine.session import TrackingSession
from astate.engine.sync import SyncFetcher


def get_session(request: Request) -> TrackingSession:
    return request.app.state.session


def get_fetcher(request: Request) -> SyncFetcher:
    return request.app.state.fetcher
