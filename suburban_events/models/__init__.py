"""Data models."""

from .event import UNTITLED, EventRecord, GeoPoint, format_iso

__all__ = ["UNTITLED", "EventRecord", "GeoPoint", "format_iso"]
