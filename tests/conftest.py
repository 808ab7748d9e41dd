"""Shared fixtures."""

import logging
from datetime import datetime

import httpx
import pytest

from suburban_events.config import Source, SourceKind
from suburban_events.logger import ROOT_LOGGER_NAME
from suburban_events.utils.dates import REFERENCE_TZ


@pytest.fixture(autouse=True)
def reset_package_logger():
    """Undo setup_logging between tests so levels do not leak."""
    yield
    root = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in root.handlers:
        handler.close()
    root.handlers.clear()
    root.setLevel(logging.NOTSET)


@pytest.fixture
def fixed_now():
    """Saturday, July 12 2025, 9:00 in Denver."""
    return datetime(2025, 7, 12, 9, 0, tzinfo=REFERENCE_TZ)


@pytest.fixture
def make_source():
    def _make(name="Test Source", url="https://example.com/events", kind="markup", **kwargs):
        return Source(name=name, url=url, kind=SourceKind(kind), **kwargs)

    return _make


@pytest.fixture
def routes_transport():
    """Build an httpx.MockTransport serving fixed bodies; unknown URLs are 404."""

    def _make(routes: dict[str, tuple[int, str]]):
        def handler(request: httpx.Request) -> httpx.Response:
            status, body = routes.get(str(request.url), (404, "not found"))
            return httpx.Response(status, text=body)

        return httpx.MockTransport(handler)

    return _make
