"""HTML digest renderer."""

import html
from collections.abc import Callable
from datetime import datetime
from zoneinfo import ZoneInfo

from ..logger import get_logger
from ..models.event import EventRecord
from ..utils.dates import REFERENCE_TZ, infer_year

logger = get_logger(__name__)

DEFAULT_BRAND_NAME = "South Suburban Spotlight"
DEFAULT_COVERAGE_NOTE = (
    "Covering Greenwood Village, Littleton, Englewood, Centennial, Lone Tree, "
    "Highlands Ranch and surrounding areas."
)

TBA = "TBA"

# Labels more than this many days behind the render date belong to next year
YEAR_ROLLOVER_DAYS = 180

STYLE = """<style>
body{font-family:system-ui,-apple-system,Segoe UI,Roboto,sans-serif;margin:0}
.wrap{max-width:760px;margin:0 auto;padding:24px}
h1{font-size:24px;margin:0 0 6px}
h2{font-size:18px;margin:20px 0 8px}
.item{padding:8px 0;border-bottom:1px solid #eee}
.meta{color:#555;font-size:13px}
a{color:#0a6;text-decoration:none}
.src{color:#888;font-size:12px}
</style>"""


def day_label(dt: datetime) -> str:
    """Group header such as "Saturday, Jul 12"."""
    return f"{dt:%A, %b} {dt.day}"


def time_label(dt: datetime) -> str:
    """Clock time such as "6:00PM"."""
    return dt.strftime("%I:%M%p").lstrip("0")


class HTMLRenderer:
    """
    Render an event list as an e-mail friendly HTML document.

    Events are grouped under day headers in the reference timezone. The
    headers carry no year, so their chronological order is recovered by
    re-reading each label relative to the render date. Events without a
    start are collected under "TBA" at the end. Every piece of event text
    is escaped before it is written.
    """

    def __init__(
        self,
        brand_name: str = DEFAULT_BRAND_NAME,
        coverage_note: str = DEFAULT_COVERAGE_NOTE,
        tz: ZoneInfo = REFERENCE_TZ,
        clock: Callable[[], datetime] | None = None,
    ):
        """
        Initialize the renderer.

        Args:
            brand_name: Newsletter name used in the heading
            coverage_note: Line shown under the heading
            tz: Reference timezone for day grouping
            clock: Returns the current aware datetime, injectable for tests
        """
        self.brand_name = brand_name
        self.coverage_note = coverage_note
        self.tz = tz
        self.clock = clock or (lambda: datetime.now(self.tz))

    def render(self, events: list[EventRecord], area_label: str) -> str:
        """
        Render events into a single HTML string.

        Args:
            events: Final event list, already sorted
            area_label: Area shown in the heading (usually the ZIP code)

        Returns:
            HTML document
        """
        parts = ['<!doctype html><meta charset="utf-8">', STYLE, '<div class="wrap">']
        parts.append(
            f"<h1>{html.escape(self.brand_name)}: Events near {html.escape(str(area_label))}</h1>"
        )
        parts.append(f'<div class="meta">{html.escape(self.coverage_note)}</div>')

        if not events:
            parts.append('<p class="meta">No upcoming events</p>')
        else:
            for label, group in self.group_by_day(events):
                parts.append(f"<h2>{html.escape(label)}</h2>")
                parts.extend(self._render_item(event) for event in group)

        parts.append("</div>")
        logger.debug(f"Rendered {len(events)} events for {area_label}")
        return "".join(parts)

    def group_by_day(self, events: list[EventRecord]) -> list[tuple[str, list[EventRecord]]]:
        """
        Group events by day label, keeping each group's incoming order.

        Returns:
            (label, events) pairs in chronological order, "TBA" last
        """
        groups: dict[str, list[EventRecord]] = {}
        for event in events:
            label = day_label(event.start.astimezone(self.tz)) if event.start else TBA
            groups.setdefault(label, []).append(event)

        reference = self.clock().astimezone(self.tz).date()
        dated = sorted(
            (label for label in groups if label != TBA),
            key=lambda label: self._label_sort_key(label, reference),
        )
        ordered = [(label, groups[label]) for label in dated]
        if TBA in groups:
            ordered.append((TBA, groups[TBA]))
        return ordered

    @staticmethod
    def _label_sort_key(label: str, reference) -> tuple[int, int, int]:
        """Recover (year, month, day) from a "Weekday, Mon D" label."""
        month_day = label.split(", ", 1)[1]
        month_name, day = month_day.split(" ")
        month = datetime.strptime(month_name, "%b").month
        day = int(day)
        year = infer_year(month, day, reference, YEAR_ROLLOVER_DAYS)
        return (year, month, day)

    def _render_item(self, event: EventRecord) -> str:
        when = time_label(event.start.astimezone(self.tz)) if event.start else TBA
        location = event.location or TBA
        tags = ""
        if event.tags:
            tags = f' <span class="src">• {html.escape(", ".join(event.tags))}</span>'
        return (
            '<div class="item">'
            f'<div><a href="{html.escape(event.url, quote=True)}">{html.escape(event.title)}</a></div>'
            f'<div class="meta">{when} – {html.escape(location)}{tags}</div>'
            f'<div class="src">{html.escape(event.source)}</div>'
            "</div>"
        )
