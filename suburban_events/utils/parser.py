"""BeautifulSoup wrapper used by the markup and JSON-LD adapters."""

import re
from typing import Optional
from urllib.parse import urljoin

from bs4 import BeautifulSoup, Tag

from ..logger import get_logger

logger = get_logger(__name__)

_WHITESPACE_RE = re.compile(r"\s+")

JSON_LD_SELECTOR = 'script[type="application/ld+json"]'


class HTMLParser:
    """
    A parsed listing page plus the lookups the adapters need.

    The lxml tree builder is used for speed and tolerance of broken
    markup. Relative links are resolved against ``base_url``, normally
    the source URL the page was fetched from.
    """

    def __init__(self, html: str, base_url: str = ""):
        self.soup = BeautifulSoup(html or "", "lxml")
        self.base_url = base_url

    def select(self, selector: str) -> list[Tag]:
        """All elements matching a CSS selector (may raise SelectorSyntaxError)."""
        return self.soup.select(selector)

    def select_one(self, selector: str) -> Optional[Tag]:
        return self.soup.select_one(selector)

    def json_ld_scripts(self) -> list[str]:
        """Raw bodies of every non-empty JSON-LD script block, in page order."""
        bodies = []
        for script in self.soup.select(JSON_LD_SELECTOR):
            body = script.get_text()
            if body.strip():
                bodies.append(body)
        logger.debug(f"Found {len(bodies)} JSON-LD blocks")
        return bodies

    def _target(self, element: Tag, selector: str) -> Optional[Tag]:
        return element.select_one(selector) if selector else element

    def get_text(self, element: Tag, selector: str = "", strip: bool = True) -> str:
        """
        Text of ``element``, or of its first descendant matching ``selector``.

        Child strings are joined with spaces so adjacent block elements do
        not run together. With ``strip`` whitespace runs collapse to one
        space. A missing target gives "".
        """
        target = self._target(element, selector)
        if target is None:
            return ""
        text = target.get_text(" ")
        return self.clean_text(text) if strip else text

    def get_attr(
        self, element: Tag, attr: str, selector: str = "", default: str = ""
    ) -> str:
        """
        Attribute of ``element`` (or of its first match for ``selector``).

        Multi-valued attributes such as ``class`` come back space-joined.
        """
        target = self._target(element, selector)
        value = target.get(attr) if target is not None else None
        if value is None:
            return default
        if isinstance(value, list):
            return " ".join(value)
        return str(value).strip()

    def get_link(self, element: Tag, selector: str = "a") -> str:
        """
        Absolute event link for a listing element.

        An anchor element links to its own href; anything else uses its
        first descendant anchor. Returns "" when there is no href.
        """
        own_href = element.name == "a" and element.get("href")
        href = self.get_attr(element, "href", "" if own_href else selector)
        if href and self.base_url:
            return urljoin(self.base_url, href)
        return href

    @staticmethod
    def clean_text(text: str) -> str:
        if not text:
            return ""
        return _WHITESPACE_RE.sub(" ", text).strip()

    @staticmethod
    def truncate(text: str, max_length: int = 160) -> str:
        """Shorten to ``max_length`` characters, ellipsis included, at a word break."""
        if len(text) <= max_length:
            return text
        head = text[: max_length - 3].rsplit(" ", 1)[0]
        return f"{head}..."
