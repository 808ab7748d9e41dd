"""Configuration loading and validation for the aggregator."""

import json
import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

import jsonschema
import yaml
from slugify import slugify

from .logger import get_logger
from .models.event import GeoPoint

logger = get_logger(__name__)


class ConfigurationError(Exception):
    """Raised when configuration or caller-supplied inputs are invalid."""

    pass


class SourceKind(str, Enum):
    """Payload format of a source, which selects its parser."""

    FEED = "feed"
    CALENDAR_FEED = "calendar_feed"
    MARKUP = "markup"


def _env_flag(value: str) -> bool:
    return value.strip().lower() in ("true", "1", "yes", "on")


@dataclass
class Source:
    """
    One configured event source.

    ``EVENTS_SOURCE_<ID>_URL`` and ``EVENTS_SOURCE_<ID>_ENABLED`` in the
    environment replace the configured url and enabled flag, where ``<ID>``
    is the source id upper-cased with dashes turned into underscores.
    """

    name: str
    url: str
    kind: SourceKind
    id: str = ""
    selector: str | None = None
    enabled: bool = True

    def __post_init__(self):
        self.id = self.id or slugify(self.name)
        self.kind = SourceKind(self.kind)
        self._apply_env_overrides()

    @property
    def env_prefix(self) -> str:
        return "EVENTS_SOURCE_" + self.id.upper().replace("-", "_")

    def _apply_env_overrides(self) -> None:
        url = os.environ.get(self.env_prefix + "_URL")
        if url:
            logger.debug(f"{self.id}: url taken from environment")
            self.url = url

        flag = os.environ.get(self.env_prefix + "_ENABLED")
        if flag is not None:
            self.enabled = _env_flag(flag)
            logger.debug(f"{self.id}: enabled={self.enabled} from environment")


@dataclass
class SourcesConfig:
    """The parsed sources file: ordered sources plus shared defaults."""

    sources: list[Source]
    defaults: dict = field(default_factory=dict)

    def get_enabled_sources(self) -> list[Source]:
        return [source for source in self.sources if source.enabled]


def load_yaml(path: Path) -> dict:
    """Read a YAML mapping, raising ConfigurationError on any problem."""
    if not path.exists():
        raise ConfigurationError(f"Config file not found: {path}")

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {path.name}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"{path.name} must contain a mapping")
    return data


def load_sources_config(config_path: Path) -> SourcesConfig:
    """
    Read ``sources.yaml`` and build the ordered source list.

    The file is checked against ``sources.schema.json`` from the same
    directory when that schema exists. Source order in the file is kept,
    since it decides which record survives a deduplication tie.

    Raises:
        ConfigurationError: Missing, empty or invalid file, a bad source
            entry, or two sources sharing an id
    """
    logger.info(f"Reading sources from {config_path}")
    raw_config = load_yaml(config_path)
    if not raw_config:
        raise ConfigurationError(f"{config_path.name} is empty")

    validate_sources_config(raw_config, config_path.parent)

    defaults = raw_config.get("defaults") or {}
    entries = raw_config.get("sources") or []
    if not entries:
        raise ConfigurationError(f"{config_path.name} lists no sources")

    sources: list[Source] = []
    for position, entry in enumerate(entries, start=1):
        try:
            source = _parse_source(entry, defaults)
        except (ConfigurationError, ValueError, TypeError) as e:
            label = entry.get("name") if isinstance(entry, dict) else None
            raise ConfigurationError(
                f"Invalid source '{label or f'#{position}'}': {e}"
            ) from e

        if any(existing.id == source.id for existing in sources):
            raise ConfigurationError(f"Duplicate source id: {source.id}")
        sources.append(source)

    enabled = sum(1 for s in sources if s.enabled)
    logger.info(f"{len(sources)} sources configured, {enabled} enabled")
    return SourcesConfig(sources=sources, defaults=defaults)


def _parse_source(raw: dict, defaults: dict) -> Source:
    """Build a Source from one ``sources`` entry, filling in defaults."""
    missing = [key for key in ("name", "url", "kind") if key not in raw]
    if missing:
        raise ConfigurationError(f"Missing required field: {missing[0]}")

    try:
        kind = SourceKind(raw["kind"])
    except ValueError as e:
        allowed = ", ".join(k.value for k in SourceKind)
        raise ConfigurationError(
            f"Unknown kind '{raw['kind']}' (expected one of: {allowed})"
        ) from e

    selector = raw.get("selector")
    if kind is SourceKind.MARKUP and not selector:
        selector = defaults.get("selector")

    return Source(
        name=raw["name"],
        url=raw["url"],
        kind=kind,
        id=raw.get("id", ""),
        selector=selector,
        enabled=raw.get("enabled", defaults.get("enabled", True)),
    )


def validate_sources_config(config: dict, config_dir: Path) -> None:
    """
    Check a parsed sources file against ``sources.schema.json``.

    A missing schema only logs a warning. Schema violations raise
    ConfigurationError naming the offending path.
    """
    schema_path = config_dir / "sources.schema.json"
    if not schema_path.exists():
        logger.warning(f"No schema at {schema_path}; sources file not schema-checked")
        return

    try:
        schema = json.loads(schema_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"{schema_path.name} is not valid JSON: {e}") from e

    try:
        jsonschema.validate(instance=config, schema=schema)
    except jsonschema.ValidationError as e:
        where = "/".join(str(part) for part in e.absolute_path) or "(root)"
        raise ConfigurationError(f"Sources validation failed at {where}: {e.message}") from e

    logger.debug(f"Sources file matches {schema_path.name}")


def load_zip_table(path: Path) -> dict[str, GeoPoint]:
    """
    Load the ZIP code centroid table.

    The file maps ZIP codes to ``{lat, lon}``. Keys are read as strings so
    ZIPs with a leading zero survive YAML's integer coercion when quoted.
    """
    raw = load_yaml(path)
    table: dict[str, GeoPoint] = {}
    for zip_code, coords in raw.items():
        try:
            table[str(zip_code)] = GeoPoint(lat=float(coords["lat"]), lon=float(coords["lon"]))
        except (KeyError, TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid coordinates for ZIP {zip_code}: {e}") from e
    logger.debug(f"Loaded {len(table)} ZIP centroids from {path}")
    return table


def resolve_zip(table: dict[str, GeoPoint], zip_code: str) -> GeoPoint:
    """Look up a ZIP centroid, raising ConfigurationError if unknown."""
    center = table.get(str(zip_code).strip())
    if center is None:
        raise ConfigurationError(f"Unsupported ZIP: {zip_code}")
    return center
