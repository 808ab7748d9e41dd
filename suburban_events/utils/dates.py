"""Date and time normalization for heterogeneous source formats.

Sources publish dates in whatever shape their CMS produces. Every value is
funnelled through :func:`normalize_datetime`, which tries, in order:

- ISO 8601: "2025-07-12T18:00:00", "2025-07-12T18:00:00Z", "2025-07-12"
- RFC 2822 (RSS pubDate): "Wed, 02 Oct 2002 08:00:00 -0600"
- Bare month and day: "Jul 12", "July 12" (current year)

Naive values are interpreted in the reference timezone; aware values are
converted to it. Anything else normalizes to ``None``: unparsable dates are
routine in scraped markup and must never abort ingestion.
"""

from datetime import date, datetime, time, timedelta
from email.utils import parsedate_to_datetime
from zoneinfo import ZoneInfo

# Reference timezone for the south-suburban Denver area
REFERENCE_TZ = ZoneInfo("America/Denver")

MONTH_DAY_FORMATS = ("%b %d %Y", "%B %d %Y")


def _in_zone(dt: datetime, tz: ZoneInfo) -> datetime:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=tz)
    else:
        dt = dt.astimezone(tz)
    return dt.replace(microsecond=0)


def parse_iso(text: str, tz: ZoneInfo = REFERENCE_TZ) -> datetime | None:
    """Parse an ISO 8601 date or date-time."""
    try:
        return _in_zone(datetime.fromisoformat(text), tz)
    except ValueError:
        return None


def parse_rfc2822(text: str, tz: ZoneInfo = REFERENCE_TZ) -> datetime | None:
    """Parse an e-mail style (RFC 2822) date-time, as used by RSS."""
    try:
        return _in_zone(parsedate_to_datetime(text), tz)
    except (TypeError, ValueError, IndexError, OverflowError):
        return None


def parse_month_day(
    text: str, tz: ZoneInfo = REFERENCE_TZ, now: datetime | None = None
) -> datetime | None:
    """Parse "Jul 12" or "July 12" as midnight in the reference year."""
    year = (now or datetime.now(tz)).astimezone(tz).year
    # strptime without a year rejects Feb 29, so append the year first
    for fmt in MONTH_DAY_FORMATS:
        try:
            return datetime.strptime(f"{text} {year}", fmt).replace(tzinfo=tz)
        except ValueError:
            continue
    return None


def normalize_datetime(
    value: str | datetime | date | None,
    tz: ZoneInfo = REFERENCE_TZ,
    now: datetime | None = None,
) -> datetime | None:
    """
    Convert a raw date value into an aware datetime in ``tz``.

    Args:
        value: Raw string from a payload, or a date/datetime from a library
        tz: Reference timezone
        now: Clock override used to anchor year-less dates

    Returns:
        Normalized datetime (second precision) or None
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return _in_zone(value, tz)
    if isinstance(value, date):
        return datetime.combine(value, time.min, tzinfo=tz)
    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None

    return (
        parse_iso(text, tz)
        or parse_rfc2822(text, tz)
        or parse_month_day(text, tz, now)
    )


def start_of_day(dt: datetime) -> datetime:
    """Midnight at the start of ``dt``'s calendar day, same zone."""
    return datetime.combine(dt.date(), time.min, tzinfo=dt.tzinfo)


def end_of_day(dt: datetime) -> datetime:
    """Last representable instant of ``dt``'s calendar day, same zone."""
    return datetime.combine(dt.date(), time.max, tzinfo=dt.tzinfo)


def time_window(
    now: datetime, window_days: int, tz: ZoneInfo = REFERENCE_TZ
) -> tuple[datetime, datetime]:
    """Inclusive window from the start of today to the end of today + N days."""
    local_now = now.astimezone(tz)
    return start_of_day(local_now), end_of_day(local_now + timedelta(days=window_days))


def infer_year(month: int, day: int, reference: date, max_past_days: int = 180) -> int:
    """
    Infer the year for a month/day label relative to ``reference``.

    A date lying more than ``max_past_days`` before the reference is taken
    to be next year, which keeps December-to-January windows in order.
    """
    try:
        candidate = date(reference.year, month, day)
    except ValueError:
        return reference.year
    if (reference - candidate).days > max_past_days:
        return reference.year + 1
    return reference.year
