"""OPML parser for importing and exporting feed subscriptions."""

import xml.etree.ElementTree as ET
from dataclasses import dataclass
from pathlib import Path

from .database.models import DBFeed, NewFeed
from .exceptions import OpmlError


@dataclass
class OPMLFeed:
    """A feed entry from an OPML file."""
    url: str
    title: str | None
    site_url: str | None = None
    category: str | None = None

    def to_new_feed(self) -> NewFeed:
        return NewFeed(title=self.title or self.url, url=self.url, site_url=self.site_url)


@dataclass
class OPMLDocument:
    """Parsed OPML document."""
    title: str | None
    feeds: list[OPMLFeed]


def parse_opml(xml_content: str) -> OPMLDocument:
    """
    Parse OPML XML content and extract feed subscriptions.

    Handles both flat and nested (categorized) OPML structures.

    Raises:
        OpmlError: If XML is invalid or not OPML format
    """
    try:
        root = ET.fromstring(xml_content)
    except ET.ParseError as e:
        raise OpmlError(f"Invalid XML: {e}") from e

    # Verify it's an OPML document
    if root.tag.lower() != "opml":
        raise OpmlError(f"Not an OPML document (root element: {root.tag})")

    doc_title = None
    head = root.find("head")
    if head is not None:
        title_elem = head.find("title")
        if title_elem is not None and title_elem.text:
            doc_title = title_elem.text.strip()

    body = root.find("body")
    if body is None:
        raise OpmlError("OPML document missing <body> element")

    feeds: list[OPMLFeed] = []
    _parse_outlines(body, feeds, category=None)

    return OPMLDocument(title=doc_title, feeds=feeds)


def _parse_outlines(
    element: ET.Element,
    feeds: list[OPMLFeed],
    category: str | None
) -> None:
    """
    Recursively parse outline elements.

    Outlines with an xmlUrl are feeds; anything else is treated as a folder.
    """
    for outline in element.findall("outline"):
        xml_url = outline.get("xmlUrl") or outline.get("xmlurl")

        if xml_url:
            title = outline.get("title") or outline.get("text")
            feeds.append(OPMLFeed(
                url=xml_url.strip(),
                title=title.strip() if title else None,
                site_url=outline.get("htmlUrl") or outline.get("htmlurl"),
                category=category,
            ))
        else:
            folder_name = outline.get("title") or outline.get("text")
            _parse_outlines(
                outline,
                feeds,
                category=folder_name.strip() if folder_name else category
            )


def generate_opml(feeds: list[DBFeed], title: str = "Speedy Reader Subscriptions") -> str:
    """Generate an OPML 2.0 document listing the given feeds."""
    root = ET.Element("opml", version="2.0")

    head = ET.SubElement(root, "head")
    title_elem = ET.SubElement(head, "title")
    title_elem.text = title

    body = ET.SubElement(root, "body")
    for feed in feeds:
        attrs = {
            "type": "rss",
            "text": feed.title or feed.url,
            "title": feed.title or feed.url,
            "xmlUrl": feed.url,
        }
        if feed.site_url:
            attrs["htmlUrl"] = feed.site_url
        ET.SubElement(body, "outline", **attrs)

    ET.indent(root)
    return '<?xml version="1.0" encoding="UTF-8"?>\n' + ET.tostring(
        root, encoding="unicode"
    ) + "\n"


def read_opml_file(path: Path) -> OPMLDocument:
    """
    Read and parse an OPML file.

    Raises:
        OpmlError: If the file cannot be read or parsed
    """
    try:
        content = Path(path).expanduser().read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise OpmlError(f"Could not read {path}: {e}") from e
    return parse_opml(content)


def write_opml_file(path: Path, feeds: list[DBFeed]):
    """
    Write feeds to an OPML file.

    Raises:
        OpmlError: If the file cannot be written
    """
    try:
        Path(path).expanduser().write_text(generate_opml(feeds), encoding="utf-8")
    except OSError as e:
        raise OpmlError(f"Could not write {path}: {e}") from e
