"""Suburban Events Aggregator - Local events digest for the south Denver suburbs."""

from .aggregator import AggregateResult, EventAggregator, SourceStatus
from .classifier import INTERESTS, EventTagger
from .config import ConfigurationError
from .deduplicator import EventDeduplicator
from .models import EventRecord, GeoPoint

__version__ = "1.0.0"

__all__ = [
    "INTERESTS",
    "AggregateResult",
    "ConfigurationError",
    "EventAggregator",
    "EventDeduplicator",
    "EventRecord",
    "EventTagger",
    "GeoPoint",
    "SourceStatus",
]
