"""Consistency checks between index rows, image folders and HTML pages."""

import logging
from collections import Counter
from dataclasses import dataclass, field

from cms.services.content_store import ContentStore
from cms.services.errors import CorruptIndexError
from cms.services.post_renderer import extract_region
from cms.services.project_catalog import ProjectCatalog

logger = logging.getLogger(__name__)


@dataclass
class CheckResult:
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def merge(self, other: "CheckResult") -> None:
        self.errors.extend(other.errors)
        self.warnings.extend(other.warnings)


def _scopes(store: ContentStore) -> list[str | None]:
    if not store.project_scoped:
        return [None]
    assets = store.root / "assets"
    if not assets.is_dir():
        return []
    return sorted(
        p.name for p in assets.iterdir() if p.is_dir() and p.name != "images"
    )


def check_store(store: ContentStore) -> CheckResult:
    """Check that every row has its page and folder, and nothing is orphaned.

    Missing pages and duplicate slugs are errors; missing image folders,
    pages without a title region and orphaned files are warnings.
    """
    result = CheckResult()
    try:
        rows = store.list_entries()
    except CorruptIndexError as e:
        result.errors.append(str(e))
        return result

    label = store.index_path
    keys = Counter((row.project_slug, row.slug) for row in rows)
    for (project, slug), count in keys.items():
        if count > 1:
            result.errors.append(f"{label}: slug {slug!r} appears {count} times")

    for row in rows:
        project = row.project_slug if store.project_scoped else None
        if store.project_scoped and not project:
            result.errors.append(f"{label}: {row.slug!r} has no project_slug")
            continue
        if row.file != store.post_url(row.slug, project):
            result.warnings.append(f"{label}: {row.slug!r} file path is {row.file!r}")
        html_path = store.html_path(row.slug, project)
        if not html_path.is_file():
            result.errors.append(f"{label}: page missing for {row.slug!r}")
        else:
            page = html_path.read_text(encoding="utf-8")
            if extract_region(page, "title") is None:
                result.warnings.append(f"{html_path}: no title region")
        if not store.images_dir(row.slug, project).is_dir():
            result.warnings.append(f"{label}: image folder missing for {row.slug!r}")

    for project in _scopes(store):
        known = {slug for (p, slug) in keys if p == project}
        posts_dir = store.posts_dir(project)
        if posts_dir.is_dir():
            for page in sorted(posts_dir.glob("*.html")):
                if page.stem not in known:
                    result.warnings.append(f"{page}: page has no index row")
        images_root = store.images_root(project)
        if images_root.is_dir():
            for folder in sorted(p for p in images_root.iterdir() if p.is_dir()):
                if folder.name not in known:
                    result.warnings.append(f"{folder}: folder has no index row")

    logger.debug("Checked %d rows in %s", len(rows), label)
    return result


def check_catalog(catalog: ProjectCatalog) -> CheckResult:
    """Check projects against their folders and the posts that reference them."""
    result = CheckResult()
    try:
        projects = catalog.list_projects()
    except CorruptIndexError as e:
        result.errors.append(str(e))
        return result

    slugs = {project.slug for project in projects}
    for project in projects:
        if not catalog.project_dir(project.slug).is_dir():
            result.errors.append(f"project folder missing for {project.slug!r}")

    try:
        rows = catalog.posts.list_entries()
    except CorruptIndexError:
        return result
    for row in rows:
        if row.project_slug and row.project_slug not in slugs:
            result.errors.append(
                f"post {row.slug!r} belongs to unknown project {row.project_slug!r}"
            )
    return result
