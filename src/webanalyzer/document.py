"""
Document parsing and the read-only extractors that run over a parsed page.
"""
from __future__ import annotations

import logging
from typing import Dict, Tuple, Union

from bs4 import BeautifulSoup, UnicodeDammit
from bs4.element import Doctype
from bs4.builder import ParserRejectedMarkup

from webanalyzer.errors import ParseError

logger = logging.getLogger(__name__)

HEADING_LEVELS: Tuple[str, ...] = ("h1", "h2", "h3", "h4", "h5", "h6")

UNKNOWN_VERSION = "Unknown"

# Matched against the serialized doctype. Ordered, case-sensitive; first match
# wins. The serializer always writes the "<!DOCTYPE" keyword in upper case but
# keeps the case of the root name, so HTML/html is what separates HTML 4 from
# XHTML.
VERSION_RULES: Tuple[Tuple[str, str], ...] = (
    ("<!DOCTYPE html>", "HTML5"),
    ("<!DOCTYPE HTML PUBLIC", "HTML 4"),
    ("<!DOCTYPE html PUBLIC", "XHTML"),
)

LOGIN_PHRASES: Tuple[str, ...] = ("login with", "sign in with")


class ParsedDocument:
    """A parsed page: the element tree plus the decoded markup it came from."""

    __slots__ = ("_soup", "_markup")

    def __init__(self, soup: BeautifulSoup, markup: str) -> None:
        self._soup = soup
        self._markup = markup

    @property
    def soup(self) -> BeautifulSoup:
        return self._soup

    @property
    def markup(self) -> str:
        return self._markup

    def serialized_doctype(self) -> str:
        """Doctype declarations as the serializer renders them, e.g. <!DOCTYPE html>."""
        return "".join(
            node.output_ready() for node in self._soup.contents if isinstance(node, Doctype)
        )


def parse_document(markup: Union[bytes, str]) -> ParsedDocument:
    """
    Build a ParsedDocument from raw page content.

    Bytes are decoded using the declared or sniffed charset. Empty or
    structurally sloppy HTML (unclosed tags and the like) parses fine; only
    undecodable input or markup the parser rejects outright raises ParseError.
    """
    if isinstance(markup, bytes):
        dammit = UnicodeDammit(markup, is_html=True)
        text = dammit.unicode_markup
        if text is None:
            raise ParseError("Failed to decode page content")
        logger.debug("Decoded %d bytes as %s", len(markup), dammit.original_encoding)
    else:
        text = markup

    try:
        soup = BeautifulSoup(text, "lxml")
    except ParserRejectedMarkup as e:
        logger.error("Failed to parse HTML: %s", e)
        raise ParseError(f"Failed to parse HTML: {e}") from e

    logger.debug("HTML document parsed successfully")
    return ParsedDocument(soup, text)


def sniff_html_version(doc: ParsedDocument) -> str:
    """Classify the page doctype using VERSION_RULES."""
    doctype = doc.serialized_doctype()
    for marker, version in VERSION_RULES:
        if marker in doctype:
            return version
    return UNKNOWN_VERSION


def extract_title(doc: ParsedDocument) -> str:
    """Text of the first <title> inside <head>, or an empty string."""
    head = doc.soup.head
    if head is None:
        return ""
    title = head.find("title")
    if title is None:
        return ""
    return title.get_text(strip=True)


def count_headings(doc: ParsedDocument) -> Dict[str, int]:
    """Count h1..h6 elements anywhere in the page. All six keys are always present."""
    return {level: len(doc.soup.find_all(level)) for level in HEADING_LEVELS}


def _is_password_type(value) -> bool:
    return value is not None and value.strip().lower() == "password"


def has_login_form(doc: ParsedDocument) -> bool:
    """
    Heuristic login detection.

    True when the page has a password input, or a button or link whose
    text mentions a third-party login ("Login with ...", "Sign in with ...").
    """
    if doc.soup.find("input", attrs={"type": _is_password_type}) is not None:
        return True

    for element in doc.soup.find_all(["button", "a"]):
        text = " ".join(element.get_text().split()).lower()
        if any(phrase in text for phrase in LOGIN_PHRASES):
            return True
    return False
