"""Page signal extraction from a rendered HTML snapshot."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup

from worker.models import Heading


@dataclass
class MetaTags:
    """Title plus the meta tags the report cares about."""

    title: str = ""
    description: str = ""
    keywords: str = ""
    og_tags: dict[str, str] = field(default_factory=dict)


@dataclass
class PageSignals:
    """Everything read from one DOM snapshot."""

    meta: MetaTags
    headings: list[Heading]
    links: list[str]
    image_count: int
    images_with_alt: int
    has_viewport_meta: bool
    has_schema_org: bool
    language: str
    direction: str


def parse_meta_tags(soup: BeautifulSoup) -> MetaTags:
    """
    Read title, description, keywords and ``og:*`` properties.

    Later tags win when a name repeats.
    """
    meta = MetaTags()

    title_tag = soup.find("title")
    if title_tag:
        meta.title = title_tag.get_text(strip=True)

    for tag in soup.find_all("meta"):
        name = tag.get("name")
        prop = tag.get("property")
        content = tag.get("content") or ""
        if name == "description":
            meta.description = content
        elif name == "keywords":
            meta.keywords = content
        elif prop and prop.startswith("og:"):
            meta.og_tags[prop] = content

    return meta


def detect_headings(soup: BeautifulSoup) -> list[Heading]:
    """h1-h6 in document order, level taken from the tag name."""
    return [
        Heading(level=int(tag.name[1]), text=tag.get_text(" ", strip=True))
        for tag in soup.find_all(["h1", "h2", "h3", "h4", "h5", "h6"])
    ]


def extract_links(soup: BeautifulSoup, base_url: str) -> list[str]:
    """Anchor hrefs resolved against the page URL."""
    links = []
    for a in soup.find_all("a", href=True):
        href = a["href"].strip()
        if href:
            links.append(urljoin(base_url, href))
    return links


def count_links(links: Iterable[str], domain: str) -> tuple[int, int]:
    """
    Split links into (internal, external).

    A link is internal when its host is ``domain`` or a subdomain of it.
    Anything that is not an absolute URL counts as internal.
    """
    domain = domain.lower()
    internal = external = 0

    for link in links:
        try:
            parsed = urlparse(link)
            host = parsed.hostname
        except ValueError:
            internal += 1
            continue

        if not parsed.scheme:
            internal += 1
        elif host and (host == domain or host.endswith("." + domain)):
            internal += 1
        else:
            external += 1

    return internal, external


def analyze_images(soup: BeautifulSoup) -> tuple[int, int]:
    """(total images, images with non-blank alt text)."""
    images = soup.find_all("img")
    with_alt = sum(1 for img in images if (img.get("alt") or "").strip())
    return len(images), with_alt


def extract_page_signals(html: str, url: str) -> PageSignals:
    """Parse a rendered page into the signals used by the audit."""
    soup = BeautifulSoup(html, "html.parser")
    root = soup.find("html")

    total_images, images_with_alt = analyze_images(soup)

    return PageSignals(
        meta=parse_meta_tags(soup),
        headings=detect_headings(soup),
        links=extract_links(soup, url),
        image_count=total_images,
        images_with_alt=images_with_alt,
        has_viewport_meta=soup.find("meta", attrs={"name": "viewport"}) is not None,
        has_schema_org=soup.find("script", attrs={"type": "application/ld+json"}) is not None,
        language=(root.get("lang") or "") if root else "",
        direction=(root.get("dir") or "") if root else "",
    )
