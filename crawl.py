#!/usr/bin/env python3
"""
Suburban Events Aggregator
==========================

Command-line interface for building the local events digest.

Usage:
    python crawl.py run                          # Digest for the default ZIP
    python crawl.py run --zip 80120 --radius 5   # Another area
    python crawl.py run --interests Music,Arts   # Only matching events
    python crawl.py run --email-to me@example.com
    python crawl.py preview --zip 80126 --zip 80120  # JSON, one fetch per page
    python crawl.py list-sources                 # List configured sources
    python crawl.py validate                     # Check configuration
    python crawl.py status                       # Show last run results
    python crawl.py interests                    # List interest categories
"""

import asyncio
import json
import os
import smtplib
import sys
from datetime import datetime
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import click
import yaml

from suburban_events import __version__
from suburban_events.aggregator import AggregateResult, EventAggregator
from suburban_events.classifier import EventTagger
from suburban_events.config import (
    ConfigurationError,
    load_sources_config,
    load_zip_table,
    resolve_zip,
)
from suburban_events.delivery import SMTPSettings, send_digest
from suburban_events.generators import HTMLRenderer
from suburban_events.logger import get_logger, setup_logging
from suburban_events.parsers import list_parsers
from suburban_events.utils import AsyncHTTPClient, ResponseCache
from suburban_events.utils.dates import REFERENCE_TZ
from suburban_events.utils.geo import DEFAULT_LOCAL_PLACES

# Status file for tracking run results
STATUS_FILE = ".events_status.json"

DEFAULT_ZIP = "80111"
DEFAULT_PREVIEW_CONCURRENCY = 4
DEFAULT_CACHE_TTL = 600


def load_config(config_path: Path) -> dict:
    """Load configuration from YAML file."""
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path, encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def setup_logging_from_config(
    config: dict,
    config_dir: Path,
    log_level_override: str | None = None,
    log_file_override: Path | None = None,
) -> None:
    """Configure logging based on config file and CLI overrides."""
    logging_cfg = config.get("logging", {}) or {}

    # CLI flags override config file settings
    effective_log_level = log_level_override or logging_cfg.get("log_level", "INFO")
    effective_log_file = log_file_override or logging_cfg.get("log_file")
    log_dir = config_dir if effective_log_file else None

    setup_logging(
        level=effective_log_level,
        log_file=str(effective_log_file) if effective_log_file else None,
        log_dir=log_dir,
        log_format=logging_cfg.get("log_format", "text"),
        max_bytes=logging_cfg.get("max_file_size", 10 * 1024 * 1024),
        backup_count=logging_cfg.get("backup_count", 5),
    )


def sources_file_path(config_dir: Path, cfg: dict) -> Path:
    return config_dir / cfg.get("sources_file", "config/sources.yaml")


def status_path(config_dir: Path, cfg: dict) -> Path:
    return config_dir / cfg.get("status_file", STATUS_FILE)


def save_status(path: Path, status: dict) -> None:
    """Save run status to file."""
    status["timestamp"] = datetime.now(REFERENCE_TZ).isoformat()
    with open(path, "w", encoding="utf-8") as f:
        json.dump(status, f, indent=2)


def load_status(path: Path) -> dict | None:
    """Load last run status from file."""
    if not path.exists():
        return None
    with open(path, encoding="utf-8") as f:
        return json.load(f)


def parse_interests(raw: str | None, known: list[str]) -> list[str]:
    """
    Split a comma-separated interest list and check every name.

    Raises:
        ConfigurationError: If a name is not a known interest
    """
    if not raw:
        return []
    interests = [part.strip() for part in raw.split(",") if part.strip()]
    unknown = [i for i in interests if i not in known]
    if unknown:
        raise ConfigurationError(
            f"Unknown interests: {', '.join(unknown)} (see 'crawl.py interests')"
        )
    return interests


def fetch_concurrency(http_cfg: dict, key: str, default: int) -> int:
    """Concurrency from FETCH_CONCURRENCY, else the config file."""
    raw = os.environ.get("FETCH_CONCURRENCY")
    if raw is None:
        return int(http_cfg.get(key, default))
    try:
        value = int(raw)
    except ValueError as e:
        raise ConfigurationError(f"Invalid FETCH_CONCURRENCY: {raw}") from e
    if value < 1:
        raise ConfigurationError(f"FETCH_CONCURRENCY must be at least 1: {raw}")
    return value


def reference_tz(cfg: dict) -> ZoneInfo:
    """Reference timezone from ``aggregation.timezone``."""
    name = (cfg.get("aggregation", {}) or {}).get("timezone")
    if not name:
        return REFERENCE_TZ
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ConfigurationError(f"Unknown timezone: {name}") from e


def build_http_client(
    http_cfg: dict, concurrency: int, cache: ResponseCache | None = None
) -> AsyncHTTPClient:
    """Create the HTTP client shared by every source of a run."""
    return AsyncHTTPClient(
        timeout=http_cfg.get("timeout", 20),
        user_agent=http_cfg.get("user_agent", "suburban-events-web/1.0 (+local)"),
        concurrency=concurrency,
        cache=cache,
        verify_ssl=http_cfg.get("verify_ssl", True),
    )


def build_renderer(cfg: dict) -> HTMLRenderer:
    """Renderer with branding from BRAND_NAME or the config file."""
    render_cfg = cfg.get("render", {}) or {}
    kwargs = {"tz": reference_tz(cfg)}
    brand_name = os.environ.get("BRAND_NAME") or render_cfg.get("brand_name")
    if brand_name:
        kwargs["brand_name"] = brand_name
    if render_cfg.get("coverage_note"):
        kwargs["coverage_note"] = render_cfg["coverage_note"]
    return HTMLRenderer(**kwargs)


def run_aggregation(
    cfg: dict,
    config_dir: Path,
    zip_code: str,
    radius: float | None,
    window_days: int | None,
    interests: str | None,
    concurrency: int,
    cache: ResponseCache | None = None,
) -> AggregateResult:
    """
    Load configuration and run one aggregation.

    Raises:
        ConfigurationError: If any configuration or argument is invalid
    """
    logger = get_logger(__name__)
    agg_cfg = cfg.get("aggregation", {}) or {}

    sources_config = load_sources_config(sources_file_path(config_dir, cfg))
    sources = sources_config.get_enabled_sources()
    if not sources:
        logger.warning("No enabled sources")

    zip_file = config_dir / cfg.get("zip_file", "config/zips.yaml")
    center = resolve_zip(load_zip_table(zip_file), zip_code)

    tz = reference_tz(cfg)
    tagger = EventTagger.from_config(agg_cfg)
    wanted = parse_interests(interests, tagger.categories)

    if radius is None:
        radius = agg_cfg.get("radius_miles", 10)
    if window_days is None:
        window_days = agg_cfg.get("window_days", 14)

    http_cfg = cfg.get("http", {}) or {}

    async def _aggregate() -> AggregateResult:
        async with build_http_client(http_cfg, concurrency, cache) as client:
            aggregator = EventAggregator(
                sources,
                client,
                tagger=tagger,
                local_places=agg_cfg.get("local_places") or DEFAULT_LOCAL_PLACES,
                tz=tz,
            )
            return await aggregator.aggregate_async(center, radius, window_days, wanted)

    return asyncio.run(_aggregate())


def print_summary(result: AggregateResult) -> None:
    """Per-source summary on stderr, keeping stdout for the document."""
    click.echo("\n" + "=" * 60, err=True)
    click.echo(click.style("RUN SUMMARY", bold=True), err=True)
    click.echo("=" * 60, err=True)
    for src in result.sources:
        if src.ok:
            mark = click.style("ok  ", fg="green")
            detail = f"{src.event_count} events"
        else:
            mark = click.style("FAIL", fg="red")
            detail = src.error or "failed"
        click.echo(f"  {mark} {src.name:<40} {detail}", err=True)
    click.echo("-" * 60, err=True)
    ok_count = len(result.sources) - len(result.failed_sources)
    click.echo(f"  Sources succeeded:  {ok_count}/{len(result.sources)}", err=True)
    click.echo(f"  Events:             {len(result.events)}", err=True)
    click.echo("=" * 60, err=True)


def result_document(result: AggregateResult, zip_code: str) -> dict:
    return {
        "zip": zip_code,
        "generated_at": datetime.now(REFERENCE_TZ).isoformat(timespec="seconds"),
        **result.to_dict(),
    }


@click.group(invoke_without_command=True)
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, path_type=Path),
    default=Path(__file__).parent / "config.yaml",
    help="Path to configuration file",
)
@click.option(
    "--log-level",
    "-l",
    type=click.Choice(
        ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], case_sensitive=False
    ),
    default=None,
    help="Override log level from config",
)
@click.option(
    "--log-file",
    type=click.Path(path_type=Path),
    default=None,
    help="Override log file path from config",
)
@click.version_option(version=__version__, prog_name="suburban-events")
@click.pass_context
def cli(ctx, config: Path, log_level: str | None, log_file: Path | None):
    """
    Suburban Events Aggregator - Local events digest for the south Denver suburbs.

    Fetches the configured feeds, calendars and web pages, keeps upcoming
    events near a ZIP code and renders them as an HTML digest.
    """
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config
    ctx.obj["config_dir"] = config.parent
    ctx.obj["log_level"] = log_level
    ctx.obj["log_file"] = log_file

    # Load config
    try:
        ctx.obj["config"] = load_config(config)
    except (FileNotFoundError, yaml.YAMLError) as e:
        click.echo(click.style(f"Error: {e}", fg="red"), err=True)
        sys.exit(1)

    # If no subcommand is provided, show help
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@cli.command()
@click.option("--zip", "zip_code", type=str, default=None, help="ZIP code to center on")
@click.option("--radius", type=float, default=None, help="Radius in miles")
@click.option("--window-days", type=int, default=None, help="Days ahead to include")
@click.option(
    "--interests",
    "-i",
    type=str,
    default=None,
    help="Comma-separated interests (e.g. 'Music,Arts')",
)
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["html", "json"]),
    default="html",
    show_default=True,
    help="Output format",
)
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write the document to a file instead of stdout",
)
@click.option("--email-to", type=str, default=None, help="Mail the HTML digest to this address")
@click.pass_context
def run(
    ctx,
    zip_code: str | None,
    radius: float | None,
    window_days: int | None,
    interests: str | None,
    output_format: str,
    output: Path | None,
    email_to: str | None,
):
    """
    Aggregate events and render the digest.

    Failed sources are reported but never fatal; an empty digest is still
    a successful run.
    """
    cfg = ctx.obj["config"]
    config_dir = ctx.obj["config_dir"]

    setup_logging_from_config(cfg, config_dir, ctx.obj["log_level"], ctx.obj["log_file"])
    logger = get_logger(__name__)

    agg_cfg = cfg.get("aggregation", {}) or {}
    zip_code = zip_code or str(agg_cfg.get("default_zip", DEFAULT_ZIP))

    logger.info("Suburban Events Aggregator starting...")

    try:
        concurrency = fetch_concurrency(cfg.get("http", {}) or {}, "concurrency", 5)
        result = run_aggregation(
            cfg, config_dir, zip_code, radius, window_days, interests, concurrency
        )
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        click.echo(click.style(f"Configuration error: {e}", fg="red"), err=True)
        sys.exit(1)

    renderer = build_renderer(cfg)
    html_doc = renderer.render(result.events, zip_code)
    if output_format == "json":
        document = json.dumps(result_document(result, zip_code), indent=2)
    else:
        document = html_doc

    if output:
        output.write_text(document, encoding="utf-8")
        logger.info(f"Wrote {output_format} digest to {output}")
    else:
        click.echo(document)

    if email_to:
        try:
            settings = SMTPSettings.from_env()
            send_digest(
                html_doc, f"{renderer.brand_name}: Events near {zip_code}", email_to, settings
            )
        except ConfigurationError as e:
            logger.error(f"Configuration error: {e}")
            click.echo(click.style(f"Configuration error: {e}", fg="red"), err=True)
            sys.exit(1)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send digest to {email_to}: {e}")
            click.echo(click.style(f"Error sending mail: {e}", fg="red"), err=True)
            sys.exit(1)
        click.echo(click.style(f"Digest sent to {email_to}", fg="green"), err=True)

    print_summary(result)

    save_status(
        status_path(config_dir, cfg),
        {
            "zip": zip_code,
            "events": len(result.events),
            "sources_total": len(result.sources),
            "sources_failed": len(result.failed_sources),
            "emailed_to": email_to,
            "sources": [s.to_dict() for s in result.sources],
        },
    )


@cli.command()
@click.option(
    "--zip", "zip_codes", type=str, multiple=True, help="ZIP code to center on (repeatable)"
)
@click.option("--radius", type=float, default=None, help="Radius in miles")
@click.option("--window-days", type=int, default=None, help="Days ahead to include")
@click.option("--interests", "-i", type=str, default=None, help="Comma-separated interests")
@click.pass_context
def preview(
    ctx,
    zip_codes: tuple[str, ...],
    radius: float | None,
    window_days: int | None,
    interests: str | None,
):
    """
    Print the events for one or more areas as JSON.

    Uses the lower preview concurrency. Sources do not depend on the ZIP,
    so when several ZIPs are given every page is fetched once and later
    areas are served from the shared response cache. One ZIP prints a
    single document; several print a list of documents.
    """
    cfg = ctx.obj["config"]
    config_dir = ctx.obj["config_dir"]

    setup_logging_from_config(cfg, config_dir, ctx.obj["log_level"], ctx.obj["log_file"])
    logger = get_logger(__name__)

    agg_cfg = cfg.get("aggregation", {}) or {}
    http_cfg = cfg.get("http", {}) or {}
    zip_codes = zip_codes or (str(agg_cfg.get("default_zip", DEFAULT_ZIP)),)
    cache = ResponseCache(ttl_seconds=http_cfg.get("cache_ttl", DEFAULT_CACHE_TTL))

    documents = []
    try:
        concurrency = fetch_concurrency(
            http_cfg, "preview_concurrency", DEFAULT_PREVIEW_CONCURRENCY
        )
        for zip_code in zip_codes:
            result = run_aggregation(
                cfg, config_dir, zip_code, radius, window_days, interests, concurrency, cache
            )
            documents.append(result_document(result, zip_code))
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        click.echo(click.style(f"Configuration error: {e}", fg="red"), err=True)
        sys.exit(1)

    output = documents[0] if len(documents) == 1 else documents
    click.echo(json.dumps(output, indent=2))


@cli.command("list-sources")
@click.pass_context
def list_sources(ctx):
    """Print the configured sources in file order."""
    try:
        sources_config = load_sources_config(
            sources_file_path(ctx.obj["config_dir"], ctx.obj["config"])
        )
    except ConfigurationError as e:
        click.echo(click.style(f"Configuration error: {e}", fg="red"), err=True)
        sys.exit(1)

    rule = "-" * 90
    click.echo(f"\n{rule}\n{'ID':<36} {'NAME':<30} {'STATUS':<10} {'KIND':<14}\n{rule}")
    for src in sources_config.sources:
        state = click.style(
            "enabled" if src.enabled else "disabled", fg="green" if src.enabled else "red"
        )
        click.echo(f"{src.id:<36} {src.name:<30} {state:<19} {src.kind.value:<14}")
    click.echo(rule)

    enabled = len(sources_config.get_enabled_sources())
    click.echo(f"Total: {len(sources_config.sources)} sources ({enabled} enabled)")


def _check_main_config(cfg: dict) -> tuple[list[str], list[str]]:
    errors = [f"config.yaml lacks '{key}'" for key in ("sources_file", "zip_file") if key not in cfg]
    warnings = [
        f"config.yaml has no '{key}' section, defaults apply"
        for key in ("http", "aggregation", "render", "logging")
        if key not in cfg
    ]
    return errors, warnings


def _check_sources(path: Path) -> tuple[list[str], list[str]]:
    try:
        sources_config = load_sources_config(path)
    except ConfigurationError as e:
        return [f"{path.name}: {e}"], []

    registered = list_parsers()
    warnings = [
        f"{src.id}: no parser registered for kind '{src.kind.value}'"
        for src in sources_config.sources
        if src.kind.value not in registered
    ]
    if not sources_config.get_enabled_sources():
        warnings.append(f"{path.name}: every source is disabled")
    return [], warnings


def _check_zip_table(path: Path, default_zip: str) -> list[str]:
    try:
        table = load_zip_table(path)
    except ConfigurationError as e:
        return [f"{path.name}: {e}"]
    if default_zip not in table:
        return [f"Default ZIP {default_zip} is not in {path.name}"]
    return []


@cli.command()
@click.pass_context
def validate(ctx):
    """
    Check config.yaml, the sources file and the ZIP table.

    Exits non-zero when any file has an error. Warnings are printed but
    do not fail the check.
    """
    cfg = ctx.obj["config"]
    config_dir = ctx.obj["config_dir"]
    sources_file = sources_file_path(config_dir, cfg)
    zip_file = config_dir / cfg.get("zip_file", "config/zips.yaml")
    default_zip = str((cfg.get("aggregation") or {}).get("default_zip", DEFAULT_ZIP))

    errors: list[str] = []
    warnings: list[str] = []
    checks = [
        (ctx.obj["config_path"].name, lambda: _check_main_config(cfg)),
        (sources_file.name, lambda: _check_sources(sources_file)),
        (zip_file.name, lambda: (_check_zip_table(zip_file, default_zip), [])),
    ]

    click.echo()
    for name, check in checks:
        found, noted = check()
        mark = click.style("✗", fg="red") if found else click.style("✓", fg="green")
        click.echo(f"  {mark} {name}")
        errors.extend(found)
        warnings.extend(noted)

    banner = "=" * 50
    verdict = (
        click.style("VALIDATION FAILED", fg="red", bold=True)
        if errors
        else click.style("VALIDATION PASSED", fg="green", bold=True)
    )
    click.echo(f"\n{banner}\n{verdict}\n{banner}")

    for error in errors:
        click.echo(click.style(f"  error: {error}", fg="red"))
    for warning in warnings:
        click.echo(click.style(f"  warning: {warning}", fg="yellow"))
    click.echo()

    sys.exit(1 if errors else 0)


@cli.command()
@click.pass_context
def status(ctx):
    """
    Show last run results.

    Displays summary statistics and per-source outcomes from the most
    recent run.
    """
    status_data = load_status(status_path(ctx.obj["config_dir"], ctx.obj["config"]))

    if not status_data:
        click.echo("No previous run status found.")
        click.echo("Run 'python crawl.py run' to build a digest.")
        return

    click.echo("\n" + "=" * 50)
    click.echo(click.style("LAST RUN STATUS", bold=True))
    click.echo("=" * 50)

    click.echo(f"  Timestamp:          {status_data.get('timestamp', 'Unknown')}")
    click.echo(f"  ZIP:                {status_data.get('zip', 'Unknown')}")
    click.echo(f"  Events:             {status_data.get('events', 0)}")
    failed = status_data.get("sources_failed", 0)
    total = status_data.get("sources_total", 0)
    click.echo(f"  Sources succeeded:  {total - failed}/{total}")
    if status_data.get("emailed_to"):
        click.echo(f"  Emailed to:         {status_data['emailed_to']}")

    for src in status_data.get("sources", []):
        if src.get("ok"):
            click.echo(f"    ✓ {src.get('name')}: {src.get('event_count', 0)} events")
        else:
            click.echo(click.style(f"    ✗ {src.get('name')}: {src.get('error')}", fg="red"))

    if failed > 0:
        click.echo(click.style("  Status:             COMPLETED WITH FAILED SOURCES", fg="yellow"))
    else:
        click.echo(click.style("  Status:             SUCCESS", fg="green"))

    click.echo("=" * 50)


@cli.command()
@click.pass_context
def interests(ctx):
    """List the interest categories events can be tagged with."""
    agg_cfg = ctx.obj["config"].get("aggregation", {}) or {}
    for category in EventTagger.from_config(agg_cfg).categories:
        click.echo(category)


if __name__ == "__main__":
    cli()
