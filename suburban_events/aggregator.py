"""Aggregation pipeline: fetch every source, then filter, tag, dedupe and sort."""

import asyncio
import math
import time
from collections.abc import Callable, Iterable, Mapping
from dataclasses import asdict, dataclass, field
from datetime import datetime
from zoneinfo import ZoneInfo

from .classifier import EventTagger
from .config import ConfigurationError, Source
from .deduplicator import EventDeduplicator
from .logger import get_logger
from .models.event import EventRecord, GeoPoint
from .parsers import get_parser
from .utils.dates import REFERENCE_TZ, time_window
from .utils.geo import DEFAULT_LOCAL_PLACES, mentions_local_place, within_radius
from .utils.http import AsyncHTTPClient

logger = get_logger(__name__)

DEFAULT_RADIUS_MILES = 10
DEFAULT_WINDOW_DAYS = 14


@dataclass
class SourceStatus:
    """Outcome of fetching and parsing one source during a run."""

    name: str
    url: str
    kind: str
    ok: bool
    event_count: int = 0
    error: str | None = None
    elapsed_ms: float = 0.0

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class AggregateResult:
    """Final event list plus a status entry per configured source."""

    events: list[EventRecord] = field(default_factory=list)
    sources: list[SourceStatus] = field(default_factory=list)

    @property
    def failed_sources(self) -> list[SourceStatus]:
        return [s for s in self.sources if not s.ok]

    def to_dict(self) -> dict:
        """Convert to a JSON-serializable dictionary."""
        return {
            "events": [e.to_dict() for e in self.events],
            "sources": [s.to_dict() for s in self.sources],
        }


def filter_time_window(
    records: Iterable[EventRecord], window_start: datetime, window_end: datetime
) -> list[EventRecord]:
    """Keep records starting inside the inclusive window; unscheduled ones are dropped."""
    return [
        r for r in records if r.start is not None and window_start <= r.start <= window_end
    ]


def filter_geofence(
    records: Iterable[EventRecord],
    center: GeoPoint,
    radius_miles: float,
    local_places: Iterable[str] = DEFAULT_LOCAL_PLACES,
) -> list[EventRecord]:
    """
    Keep records near ``center``.

    Records with coordinates are measured against the radius. Records
    without them are kept only when their location or description names
    one of the configured local places.
    """
    places = tuple(local_places)
    kept = []
    for record in records:
        point = record.coordinates
        if point is not None:
            if within_radius(point, center, radius_miles):
                kept.append(record)
        elif mentions_local_place(f"{record.location} {record.description}", places):
            kept.append(record)
    return kept


def filter_interests(
    records: Iterable[EventRecord], interests: Iterable[str]
) -> list[EventRecord]:
    """Keep records sharing at least one tag with ``interests``; no interests keeps all."""
    wanted = set(interests)
    if not wanted:
        return list(records)
    return [r for r in records if wanted.intersection(r.tags)]


def sort_events(records: Iterable[EventRecord]) -> list[EventRecord]:
    """Ascending by start ISO string, unscheduled records first. Stable."""
    return sorted(records, key=lambda r: r.start_iso)


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _coerce_center(center) -> GeoPoint:
    if isinstance(center, GeoPoint):
        return center
    if isinstance(center, Mapping):
        lat, lon = center.get("lat"), center.get("lon")
        if _is_number(lat) and _is_number(lon):
            try:
                return GeoPoint(float(lat), float(lon))
            except ValueError as e:
                raise ConfigurationError(f"Invalid center: {e}") from e
    raise ConfigurationError(f"Invalid center: {center!r}")


def _coerce_interests(interests) -> tuple[str, ...]:
    if interests is None:
        return ()
    if isinstance(interests, str) or not isinstance(interests, Iterable):
        raise ConfigurationError("interests must be a collection of interest names")
    values = tuple(interests)
    if not all(isinstance(i, str) for i in values):
        raise ConfigurationError("interests must contain only strings")
    return values


class EventAggregator:
    """
    Runs one aggregation over a fixed list of sources.

    Sources are fetched concurrently through the injected HTTP client,
    whose semaphore bounds how many requests are in flight. A source that
    fails in any way contributes nothing and is reported in the result's
    status list; it never aborts the run. Every ordering-sensitive stage
    runs after all sources have completed, over candidates concatenated
    in configured source order, so the output does not depend on which
    response arrived first.
    """

    def __init__(
        self,
        sources: list[Source],
        http_client: AsyncHTTPClient,
        tagger: EventTagger | None = None,
        deduplicator: EventDeduplicator | None = None,
        local_places: Iterable[str] = DEFAULT_LOCAL_PLACES,
        tz: ZoneInfo = REFERENCE_TZ,
        clock: Callable[[], datetime] | None = None,
    ):
        """
        Initialize the aggregator.

        Args:
            sources: Enabled sources, in the order their results are merged
            http_client: Shared client carrying the concurrency cap and cache
            tagger: Event tagger (default taxonomy if omitted)
            deduplicator: Event deduplicator
            local_places: Place names for the textual geofence fallback
            tz: Reference timezone
            clock: Returns the current aware datetime, injectable for tests
        """
        self.sources = list(sources)
        self.http_client = http_client
        self.tagger = tagger or EventTagger()
        self.deduplicator = deduplicator or EventDeduplicator()
        self.local_places = tuple(local_places)
        self.tz = tz
        self.clock = clock or (lambda: datetime.now(self.tz))

    async def aggregate_async(
        self,
        center: GeoPoint | Mapping,
        radius_miles: float = DEFAULT_RADIUS_MILES,
        window_days: int = DEFAULT_WINDOW_DAYS,
        interests: Iterable[str] = (),
    ) -> AggregateResult:
        """
        Aggregate events around ``center``.

        Args:
            center: Geofence centre, a GeoPoint or a {"lat", "lon"} mapping
            radius_miles: Geofence radius
            window_days: Days after today included in the window
            interests: Interest names to keep; empty keeps everything

        Returns:
            AggregateResult with the final event list and per-source status

        Raises:
            ConfigurationError: If an argument is invalid
        """
        center = _coerce_center(center)
        if not _is_number(radius_miles) or not math.isfinite(radius_miles) or radius_miles < 0:
            raise ConfigurationError(f"radius_miles must be a non-negative number: {radius_miles!r}")
        if not isinstance(window_days, int) or isinstance(window_days, bool) or window_days < 0:
            raise ConfigurationError(f"window_days must be a non-negative integer: {window_days!r}")
        interests = _coerce_interests(interests)

        now = self.clock()
        window_start, window_end = time_window(now, window_days, self.tz)
        logger.info(
            f"Aggregating {len(self.sources)} sources around ({center.lat}, {center.lon}), "
            f"radius {radius_miles} mi, window {window_start:%Y-%m-%d} to {window_end:%Y-%m-%d}"
        )

        outcomes = await asyncio.gather(
            *(self._process_source(source, now) for source in self.sources)
        )

        candidates: list[EventRecord] = []
        statuses: list[SourceStatus] = []
        for records, status in outcomes:
            candidates.extend(records)
            statuses.append(status)

        in_window = filter_time_window(candidates, window_start, window_end)
        nearby = filter_geofence(in_window, center, radius_miles, self.local_places)
        tagged = [self.tagger.tag_event(r) for r in nearby]
        wanted = filter_interests(tagged, interests)
        unique = self.deduplicator.dedupe(wanted)
        events = sort_events(unique)

        logger.info(
            f"Pipeline: {len(candidates)} candidates, {len(in_window)} in window, "
            f"{len(nearby)} nearby, {len(wanted)} matching interests, {len(events)} final"
        )
        failed = [s.name for s in statuses if not s.ok]
        if failed:
            logger.warning(f"{len(failed)} sources failed: {', '.join(failed)}")

        return AggregateResult(events=events, sources=statuses)

    def aggregate(
        self,
        center: GeoPoint | Mapping,
        radius_miles: float = DEFAULT_RADIUS_MILES,
        window_days: int = DEFAULT_WINDOW_DAYS,
        interests: Iterable[str] = (),
    ) -> AggregateResult:
        """Synchronous wrapper around :meth:`aggregate_async`."""
        return asyncio.run(
            self.aggregate_async(center, radius_miles, window_days, interests)
        )

    async def _process_source(
        self, source: Source, now: datetime
    ) -> tuple[list[EventRecord], SourceStatus]:
        """Fetch and parse one source; any failure yields no records."""
        start_time = time.monotonic()
        try:
            parser = get_parser(source.kind)(tz=self.tz, now=now)
            if parser.raw_payload:
                payload = await self.http_client.get_bytes(source.url)
            else:
                payload = await self.http_client.get_text(source.url)
            records = parser.parse(payload, source)
        except Exception as e:
            # Isolation boundary: one broken source must not sink the run
            logger.warning(
                f"Source {source.name} failed: {e}",
                extra={"source": source.name, "url": source.url},
            )
            return [], SourceStatus(
                name=source.name,
                url=source.url,
                kind=source.kind.value,
                ok=False,
                error=str(e) or type(e).__name__,
                elapsed_ms=(time.monotonic() - start_time) * 1000,
            )

        logger.info(f"Fetched {len(records)} events from {source.name}")
        return records, SourceStatus(
            name=source.name,
            url=source.url,
            kind=source.kind.value,
            ok=True,
            event_count=len(records),
            elapsed_ms=(time.monotonic() - start_time) * 1000,
        )
