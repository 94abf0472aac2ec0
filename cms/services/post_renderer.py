"""Post HTML rendering keyed by named regions.

A generated post is a fixed skeleton with anchor regions (title, date, time,
location, bio, content, images and, for project posts, videos). Each region
is rendered by one function and wrapped in ``<!--cms:name-->`` markers, so a
later update can replace it without touching the markup around it. Files
written before the markers existed are still patched through their anchor
tags alone.
"""

import html
import re
from dataclasses import dataclass, field
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, select_autoescape
from markupsafe import Markup

TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates"

_BR_RE = re.compile(r"<br\s*/?>\s*\n?", re.IGNORECASE)
_TAG_RE = re.compile(r"<[^>]+>")
_YOUTUBE_WATCH_RE = re.compile(r"youtube\.com/watch.*?[?&]v=([A-Za-z0-9_-]+)")
_YOUTUBE_SHORT_RE = re.compile(r"youtu\.be/([A-Za-z0-9_-]+)")

_env = Environment(
    loader=FileSystemLoader(str(TEMPLATE_DIR)),
    autoescape=select_autoescape(["html"]),
    keep_trailing_newline=True,
)


@dataclass
class PostDocument:
    """Field values of one generated post page."""

    title: str
    date: str = ""
    time: str = ""
    location: str = ""
    bio: str = ""
    content: str = ""
    images: list[str] = field(default_factory=list)
    videos: list[str] | None = None
    back_url: str = "/"
    back_label: str = "Back"


@dataclass(frozen=True)
class Region:
    name: str
    open_tag: str
    close_tag: str

    def element(self, inner: str) -> str:
        return (
            f"<!--cms:{self.name}-->{self.open_tag}{inner}"
            f"{self.close_tag}<!--/cms:{self.name}-->"
        )

    @property
    def marked_re(self) -> re.Pattern:
        return re.compile(
            rf"<!--cms:{self.name}-->{re.escape(self.open_tag)}(.*?)"
            rf"{re.escape(self.close_tag)}<!--/cms:{self.name}-->",
            re.DOTALL,
        )

    @property
    def anchor_re(self) -> re.Pattern:
        return re.compile(
            rf"{re.escape(self.open_tag)}(.*?){re.escape(self.close_tag)}",
            re.DOTALL | re.IGNORECASE,
        )


REGIONS: dict[str, Region] = {
    region.name: region
    for region in (
        Region("page_title", "<title>", "</title>"),
        Region("title", "<h1>", "</h1>"),
        Region("date", '<span id="date">', "</span>"),
        Region("time", '<span id="time">', "</span>"),
        Region("location", '<span id="location">', "</span>"),
        Region("bio", '<div class="bio">', "</div>"),
        Region("content", '<div class="content">', "</div>"),
        Region("images", '<div class="images">', "</div>"),
        Region("videos", '<div class="videos">', "</div>"),
    )
}


def nl2br(text: str) -> str:
    return text.replace("\r\n", "\n").replace("\n", "<br />\n")


def video_embed_url(link: str) -> str:
    """YouTube watch/short links become embed URLs; anything else is kept."""
    link = link.strip()
    match = _YOUTUBE_WATCH_RE.search(link) or _YOUTUBE_SHORT_RE.search(link)
    if match:
        return f"https://www.youtube.com/embed/{match.group(1)}"
    return link


def images_markup(images: list[str]) -> str:
    return "".join(
        f'<img src="{html.escape(src.replace(" ", "-"), quote=True)}" alt="Image">\n'
        for src in images
    )


def videos_markup(videos: list[str]) -> str:
    frames = []
    for link in videos:
        if link.strip():
            src = html.escape(video_embed_url(link), quote=True)
            frames.append(f'<iframe src="{src}" allowfullscreen></iframe>')
    return "\n".join(frames)


def region_inners(doc: PostDocument) -> dict[str, str]:
    """Inner markup of every region present in ``doc``."""
    inners = {
        "page_title": html.escape(doc.title),
        "title": html.escape(doc.title),
        "date": html.escape(doc.date),
        "time": html.escape(doc.time),
        "location": html.escape(doc.location),
        "bio": nl2br(html.escape(doc.bio)),
        "content": doc.content,
        "images": images_markup(doc.images),
    }
    if doc.videos is not None:
        inners["videos"] = videos_markup(doc.videos)
    return inners


def render_document(doc: PostDocument) -> str:
    """Render a complete post page from the template."""
    regions = {
        name: Markup(REGIONS[name].element(inner))
        for name, inner in region_inners(doc).items()
    }
    template = _env.get_template("post.html")
    return template.render(
        regions=regions,
        back_url=doc.back_url,
        back_label=doc.back_label,
    )


def patch_region(page: str, name: str, inner: str) -> str:
    """Replace one region wholesale; a page without it is returned unchanged."""
    region = REGIONS[name]
    replacement = region.element(inner)
    for pattern in (region.marked_re, region.anchor_re):
        page, count = pattern.subn(lambda _m: replacement, page, count=1)
        if count:
            break
    return page


def patch_document(page: str, doc: PostDocument) -> str:
    """Replace each region of an existing page, leaving other markup alone."""
    for name, inner in region_inners(doc).items():
        page = patch_region(page, name, inner)
    return page


def patch_title(page: str, title: str) -> str:
    escaped = html.escape(title)
    for name in ("page_title", "title"):
        page = patch_region(page, name, escaped)
    return page


def extract_region(page: str, name: str) -> str | None:
    """Inner markup of region ``name``, or None when the page lacks it."""
    region = REGIONS[name]
    match = region.marked_re.search(page) or region.anchor_re.search(page)
    return match.group(1) if match else None


def extract_bio(page: str) -> str | None:
    """Bio text recovered from its markup (line breaks become newlines)."""
    inner = extract_region(page, "bio")
    if inner is None:
        return None
    text = _BR_RE.sub("\n", inner)
    text = _TAG_RE.sub("", text)
    return html.unescape(text).strip()


def extract_content(page: str) -> str | None:
    inner = extract_region(page, "content")
    return inner.strip() if inner is not None else None


def rewrite_references(page: str, replacements: dict[str, str]) -> str:
    """Replace every occurrence of each old path prefix with its new form."""
    for old, new in replacements.items():
        if old != new:
            page = page.replace(old, new)
    return page
