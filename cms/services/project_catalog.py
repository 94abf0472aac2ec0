"""Project catalog: ``projects.json`` plus one folder per project.

Each project owns ``<root>/assets/<slug>/`` holding its thumbnail under
``images/<slug>.<ext>`` and the folders of its posts. Renaming or deleting a
project cascades into the project-scoped ``ContentStore``.
"""

import logging
from datetime import datetime
from pathlib import Path

from cms.config import get_settings
from cms.models.content import ProjectForm, ProjectRecord, ProjectResult
from cms.services import images as image_files
from cms.services.content_index import read_index, write_index
from cms.services.content_store import ContentStore
from cms.services.errors import (
    ContentError,
    NotFoundError,
    UploadError,
    ValidationError,
    WriteError,
)
from cms.services.file_ops import MoveJournal, index_lock, remove_tree
from cms.services.images import Upload
from cms.services.slugs import slugify, unique_slug

logger = logging.getLogger(__name__)

CATALOG_FILE = "projects.json"
DEFAULT_PROJECT_SLUG = "project"


class ProjectCatalog:
    def __init__(self, root: Path, base_url: str, posts: ContentStore) -> None:
        self.root = Path(root)
        self.base_url = base_url.rstrip("/")
        self.posts = posts

    @property
    def catalog_path(self) -> Path:
        return self.root / CATALOG_FILE

    def project_dir(self, slug: str) -> Path:
        return self.root / "assets" / slug

    def _thumbnail_url(self, slug: str, filename: str) -> str:
        return f"{self.base_url}/assets/{slug}/images/{filename}"

    def _load(self) -> list[ProjectRecord]:
        return read_index(self.catalog_path, ProjectRecord)

    @staticmethod
    def _find(projects: list[ProjectRecord], slug: str) -> int:
        for i, project in enumerate(projects):
            if project.slug == slug:
                return i
        raise NotFoundError(f"Project not found: {slug}")

    def _store_thumbnail(self, upload: Upload, slug: str) -> str:
        images_dir = self.project_dir(slug) / "images"
        target = images_dir / f"{slug}.{image_files.clean_extension(upload.filename)}"
        image_files.store_upload(upload, target, self.posts.max_upload_bytes)
        for stale in images_dir.glob(f"{slug}.*"):
            if stale != target and stale.is_file():
                stale.unlink()
        return self._thumbnail_url(slug, target.name)

    def list_projects(self) -> list[ProjectRecord]:
        return self._load()

    def get_project(self, slug: str) -> ProjectRecord:
        projects = self._load()
        return projects[self._find(projects, slug)]

    def create_project(
        self, form: ProjectForm, *, thumbnail: Upload | None = None
    ) -> ProjectResult:
        """Register a project and create its folder tree."""
        title = form.title.strip()
        if not title:
            raise ValidationError("Title is required.")

        with index_lock(self.catalog_path):
            projects = self._load()
            slug = unique_slug(
                slugify(title),
                (p.slug for p in projects),
                fallback=DEFAULT_PROJECT_SLUG,
            )
            project_dir = self.project_dir(slug)
            created_dir = not project_dir.exists()
            try:
                (project_dir / "images").mkdir(parents=True, exist_ok=True)
                (project_dir / "posts").mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise WriteError(f"Failed to create project folders for {slug}") from e

            warnings: list[str] = []
            thumbnail_url = ""
            if thumbnail is not None and thumbnail.filename:
                try:
                    thumbnail_url = self._store_thumbnail(thumbnail, slug)
                except UploadError as e:
                    logger.warning(
                        "Project thumbnail upload failed for %s: %s", slug, e
                    )
                    warnings.append(str(e))

            project = ProjectRecord(
                title=title,
                slug=slug,
                bio=(form.bio or "").strip(),
                date=form.date.strip() or datetime.now().strftime("%Y-%m-%d"),
                thumbnail=thumbnail_url,
            )
            projects.append(project)
            try:
                write_index(self.catalog_path, projects)
            except WriteError:
                if created_dir:
                    remove_tree(project_dir)
                raise

        logger.info("Created project %s", slug)
        return ProjectResult(status="created", project=project, warnings=warnings)

    def update_project(
        self, slug: str, form: ProjectForm, *, thumbnail: Upload | None = None
    ) -> ProjectResult:
        """Apply new values to a project, moving its folder if the slug changes.

        A slug change moves ``assets/<old>`` to ``assets/<new>`` (merging into
        an existing folder), renames the thumbnail file, and repoints every
        post of the project.
        """
        title = form.title.strip()
        if not title:
            raise ValidationError("Title is required.")

        with index_lock(self.catalog_path):
            projects = self._load()
            idx = self._find(projects, slug)
            project = projects[idx].model_copy(deep=True)
            new_slug = unique_slug(
                slugify(title),
                (p.slug for i, p in enumerate(projects) if i != idx),
                fallback=DEFAULT_PROJECT_SLUG,
            )
            journal = MoveJournal()
            warnings: list[str] = []

            try:
                if new_slug != slug:
                    try:
                        journal.move_dir(
                            self.project_dir(slug), self.project_dir(new_slug)
                        )
                        images_dir = self.project_dir(new_slug) / "images"
                        for old_thumb in sorted(images_dir.glob(f"{slug}.*")):
                            journal.move_file(
                                old_thumb, images_dir / f"{new_slug}{old_thumb.suffix}"
                            )
                    except OSError as e:
                        raise WriteError(
                            f"Failed to rename project folder {slug}"
                        ) from e
                    if project.thumbnail:
                        project.thumbnail = self._thumbnail_url(
                            new_slug, f"{new_slug}{Path(project.thumbnail).suffix}"
                        )

                new_dir = self.project_dir(new_slug)
                try:
                    (new_dir / "images").mkdir(parents=True, exist_ok=True)
                    (new_dir / "posts").mkdir(parents=True, exist_ok=True)
                except OSError as e:
                    raise WriteError(
                        f"Failed to create project folders for {new_slug}"
                    ) from e

                if thumbnail is not None and thumbnail.filename:
                    try:
                        project.thumbnail = self._store_thumbnail(thumbnail, new_slug)
                    except UploadError as e:
                        logger.warning(
                            "Project thumbnail upload failed for %s: %s", new_slug, e
                        )
                        warnings.append(str(e))

                project.title = title
                project.slug = new_slug
                if form.bio is not None:
                    project.bio = form.bio.strip()
                project.date = form.date.strip() or project.date
                projects[idx] = project

                self.posts.reparent(slug, project)
                write_index(self.catalog_path, projects)
            except ContentError:
                journal.rollback()
                raise

        logger.info("Updated project %s", new_slug)
        return ProjectResult(status="updated", project=project, warnings=warnings)

    def delete_project(self, slug: str) -> ProjectRecord:
        """Remove a project, every post in it, and its folder tree.

        The posts index is read before anything is removed. The folder goes
        first, then the catalog row, then the post rows; a failure part way
        leaves post rows whose project no longer exists, which
        ``scripts/validate_content.py`` reports.
        """
        with index_lock(self.catalog_path):
            projects = self._load()
            idx = self._find(projects, slug)
            removed = projects.pop(idx)
            self.posts.list_entries(slug)
            try:
                remove_tree(self.project_dir(slug))
            except OSError as e:
                raise WriteError(f"Failed to remove project folder {slug}") from e
            write_index(self.catalog_path, projects)
            dropped = self.posts.drop_project(slug)

        logger.info("Deleted project %s with %d posts", slug, len(dropped))
        return removed


# Lazy singletons: live for the process lifetime
_project_posts: ContentStore | None = None
_project_catalog: ProjectCatalog | None = None


def get_project_posts() -> ContentStore:
    """Return the shared project-scoped post store (lazy singleton)."""
    global _project_posts
    if _project_posts is None:
        settings = get_settings()
        _project_posts = ContentStore(
            settings.projects_root,
            settings.projects_base_url,
            project_scoped=True,
            back_url=f"{settings.projects_base_url.rstrip('/')}/index.html",
            back_label="Back to Projects",
            max_upload_bytes=settings.max_upload_bytes,
        )
    return _project_posts


def get_project_catalog() -> ProjectCatalog:
    """Return the shared project catalog (lazy singleton)."""
    global _project_catalog
    if _project_catalog is None:
        settings = get_settings()
        _project_catalog = ProjectCatalog(
            settings.projects_root,
            settings.projects_base_url,
            get_project_posts(),
        )
    return _project_catalog
