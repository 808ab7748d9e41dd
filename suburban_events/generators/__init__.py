"""Output generators for aggregated events."""

from .html import HTMLRenderer, day_label, time_label

__all__ = ["HTMLRenderer", "day_label", "time_label"]
