"""Content store synchronizer.

Keeps three things in agreement for every entry, keyed by its slug:

* a row in the JSON index (``posts.json``),
* an image directory,
* a generated HTML page.

Blog layout::

    <root>/posts.json
    <root>/assets/images/<slug>/{thumbnail,image1,...}.<ext>
    <root>/assets/posts/<slug>.html

Project-scoped layout (one shared index, rows grouped by ``project_slug``)::

    <root>/posts.json
    <root>/assets/<project>/images/<slug>/...
    <root>/assets/<project>/posts/<slug>.html

Web paths mirror the filesystem under the store's ``base_url``. Every
mutation holds the index file's writer lock for its whole read-modify-write
cycle.
"""

import logging
from datetime import datetime
from pathlib import Path

from cms.config import get_settings
from cms.models.content import (
    EntryForm,
    EntryRecord,
    EntryView,
    ProjectRecord,
    SaveResult,
)
from cms.services import images as image_files
from cms.services.content_index import read_index, write_index
from cms.services.errors import (
    NotFoundError,
    UploadError,
    ValidationError,
    WriteError,
)
from cms.services.file_ops import (
    MoveJournal,
    atomic_write_text,
    index_lock,
    remove_tree,
)
from cms.services.images import Upload
from cms.services.post_renderer import (
    PostDocument,
    extract_bio,
    extract_content,
    patch_document,
    patch_title,
    render_document,
    rewrite_references,
)
from cms.services.slugs import slugify, unique_slug

logger = logging.getLogger(__name__)

INDEX_FILE = "posts.json"


class ContentStore:
    """Create, update, rename, delete and read back entries under one root."""

    def __init__(
        self,
        root: Path,
        base_url: str,
        *,
        default_location: str = "",
        project_scoped: bool = False,
        back_url: str | None = None,
        back_label: str = "Back to Blog Root",
        max_upload_bytes: int = 0,
    ) -> None:
        self.root = Path(root)
        self.base_url = base_url.rstrip("/")
        self.default_location = default_location
        self.project_scoped = project_scoped
        self.back_url = back_url if back_url is not None else f"{self.base_url}/"
        self.back_label = back_label
        self.max_upload_bytes = max_upload_bytes

    @property
    def index_path(self) -> Path:
        return self.root / INDEX_FILE

    def _scope(self, project: str | None) -> str:
        if self.project_scoped:
            if not project:
                raise ValidationError("Project is required.")
            return f"assets/{project}"
        return "assets"

    def images_root(self, project: str | None = None) -> Path:
        return self.root / self._scope(project) / "images"

    def posts_dir(self, project: str | None = None) -> Path:
        return self.root / self._scope(project) / "posts"

    def images_dir(self, slug: str, project: str | None = None) -> Path:
        return self.images_root(project) / slug

    def html_path(self, slug: str, project: str | None = None) -> Path:
        return self.posts_dir(project) / f"{slug}.html"

    def images_url(self, slug: str, project: str | None = None) -> str:
        """Web prefix (with trailing slash) of an entry's image directory."""
        return f"{self.base_url}/{self._scope(project)}/images/{slug}/"

    def post_url(self, slug: str, project: str | None = None) -> str:
        return f"{self.base_url}/{self._scope(project)}/posts/{slug}.html"

    def _load(self) -> list[EntryRecord]:
        return read_index(self.index_path, EntryRecord)

    def _save(self, rows: list[EntryRecord]) -> None:
        write_index(self.index_path, rows)

    def _same_scope(self, row: EntryRecord, project: str | None) -> bool:
        return not self.project_scoped or row.project_slug == project

    def _find(self, rows: list[EntryRecord], slug: str, project: str | None) -> int:
        for i, row in enumerate(rows):
            if row.slug == slug and self._same_scope(row, project):
                return i
        raise NotFoundError(f"Post not found: {slug}")

    def _taken(
        self,
        rows: list[EntryRecord],
        project: str | None,
        exclude: int | None = None,
    ) -> list[str]:
        return [
            row.slug
            for i, row in enumerate(rows)
            if i != exclude and self._same_scope(row, project)
        ]

    def _folder_images(self, slug: str, project: str | None) -> list[str]:
        prefix = self.images_url(slug, project)
        names = image_files.list_images(self.images_dir(slug, project))
        return [prefix + name for name in names]

    def _external_urls(self, form: EntryForm) -> list[str]:
        return [
            image_files.absolute_image_url(url, self.base_url)
            for url in form.image_urls
            if url.strip()
        ]

    @staticmethod
    def _when(form: EntryForm) -> tuple[str, str]:
        now = datetime.now()
        date = form.date.strip() or now.strftime("%Y-%m-%d")
        time = form.time.strip() or now.strftime("%H:%M")
        return date, time

    def _document(
        self,
        form: EntryForm,
        date: str,
        time: str,
        location: str,
        image_list: list[str],
    ) -> PostDocument:
        videos = None
        if self.project_scoped:
            videos = [v.strip() for v in form.videos if v.strip()]
        return PostDocument(
            title=form.title.strip(),
            date=date,
            time=time,
            location=location,
            bio=form.bio.strip(),
            content=form.content.strip(),
            images=image_list or image_files.placeholder_images(self.base_url),
            videos=videos,
            back_url=self.back_url,
            back_label=self.back_label,
        )

    def _store_thumbnail(self, upload: Upload, slug: str, project: str | None) -> str:
        directory = self.images_dir(slug, project)
        path = image_files.store_thumbnail(upload, directory, self.max_upload_bytes)
        return self.images_url(slug, project) + path.name

    def _store_images(
        self,
        uploads: list[Upload],
        slug: str,
        project: str | None,
        warnings: list[str],
    ) -> list[Path]:
        """Store uploads as ``image<N>`` files; failures become warnings."""
        stored = []
        directory = self.images_dir(slug, project)
        for upload in uploads:
            if not upload.filename:
                continue
            try:
                stored.append(
                    image_files.store_image(upload, directory, self.max_upload_bytes)
                )
            except UploadError as e:
                logger.warning("Upload failed for %s: %s", slug, e)
                warnings.append(str(e))
        return stored

    def list_entries(self, project: str | None = None) -> list[EntryRecord]:
        """Index rows in creation order, optionally limited to one project."""
        rows = self._load()
        if project is None:
            return rows
        return [row for row in rows if row.project_slug == project]

    def get(self, slug: str, project: str | None = None) -> EntryRecord:
        rows = self._load()
        return rows[self._find(rows, slug, project)]

    def read_for_edit(self, slug: str, project: str | None = None) -> EntryView:
        """Recover editable fields for an entry.

        Bio and content are re-extracted from the page's regions, which is
        lossy for markup hand-edited inside them. Rows that kept the raw
        content use it instead.
        """
        row = self.get(slug, project)
        bio = row.desc
        content = ""
        html_path = self.html_path(slug, project)
        if html_path.is_file():
            page = html_path.read_text(encoding="utf-8")
            extracted_bio = extract_bio(page)
            if extracted_bio is not None:
                bio = extracted_bio
            content = extract_content(page) or ""
        if row.content_raw is not None:
            content = row.content_raw

        date, _, time = row.date.partition(" ")
        if not time and row.time:
            time = row.time
        return EntryView(
            slug=slug,
            title=row.title,
            date=date,
            time=time,
            location=row.location,
            bio=bio,
            content=content,
            thumbnail=row.thumbnail,
            images=self._folder_images(slug, project),
            file=row.file,
            project_slug=row.project_slug,
            tag=row.tag,
            videos=row.videos or [],
        )

    def create(
        self,
        form: EntryForm,
        *,
        thumbnail: Upload | None = None,
        uploads: list[Upload] | None = None,
        project: ProjectRecord | None = None,
    ) -> SaveResult:
        """Create an entry: slug, image directory, HTML page and index row.

        Raises:
            ValidationError: title missing (nothing written).
            WriteError: the page or index could not be written; files created
                by this call are removed again.
        """
        title = form.title.strip()
        if not title:
            raise ValidationError("Title is required.")
        project_slug = project.slug if project else None
        self._scope(project_slug)

        with index_lock(self.index_path):
            rows = self._load()
            slug = unique_slug(slugify(title), self._taken(rows, project_slug))
            images_dir = self.images_dir(slug, project_slug)
            html_path = self.html_path(slug, project_slug)
            journal = MoveJournal()
            warnings: list[str] = []

            try:
                if not images_dir.exists():
                    try:
                        images_dir.mkdir(parents=True)
                    except OSError as e:
                        raise WriteError(
                            f"Could not create post images folder: {slug}"
                        ) from e
                    journal.record(lambda: remove_tree(images_dir))

                thumbnail_url = ""
                if thumbnail is not None and thumbnail.filename:
                    try:
                        thumbnail_url = self._store_thumbnail(
                            thumbnail, slug, project_slug
                        )
                    except UploadError as e:
                        logger.warning("Thumbnail upload failed for %s: %s", slug, e)
                        warnings.append(str(e))

                stored = self._store_images(uploads or [], slug, project_slug, warnings)
                prefix = self.images_url(slug, project_slug)
                image_list = [prefix + path.name for path in stored]

                # First uploaded image doubles as the thumbnail
                if not thumbnail_url and stored:
                    try:
                        copied = image_files.copy_as_thumbnail(stored[0])
                        thumbnail_url = prefix + copied.name
                    except UploadError as e:
                        logger.warning("Thumbnail copy failed for %s: %s", slug, e)
                        thumbnail_url = image_list[0]

                for url in self._external_urls(form):
                    if url not in image_list:
                        image_list.append(url)

                date, time = self._when(form)
                location = (
                    self.default_location
                    if form.location is None
                    else form.location.strip()
                )
                doc = self._document(form, date, time, location, image_list)

                atomic_write_text(html_path, render_document(doc))
                journal.record(lambda: html_path.unlink(missing_ok=True))

                row = EntryRecord(
                    title=title,
                    date=f"{date} {time}",
                    thumbnail=thumbnail_url or (image_list[0] if image_list else ""),
                    file=self.post_url(slug, project_slug),
                    desc=form.bio.strip(),
                    location=location,
                )
                if project is not None:
                    row.project = project.title
                    row.project_slug = project.slug
                    row.tag = form.tag.strip()
                    row.videos = doc.videos
                    row.content_raw = doc.content
                rows.append(row)
                self._save(rows)
            except WriteError:
                journal.rollback()
                raise

        logger.info("Created post %s (%d warnings)", slug, len(warnings))
        return SaveResult(status="created", slug=slug, entry=row, warnings=warnings)

    def _relocate(
        self,
        row: EntryRecord,
        old_slug: str,
        new_slug: str,
        project: str | None,
        journal: MoveJournal,
    ) -> None:
        """Move an entry's directory and page to a new slug, fixing references.

        The page's embedded image URLs and its own path are rewritten before
        the page is moved, so it is self-consistent at its new location.
        """
        if new_slug == old_slug:
            return
        old_dir = self.images_dir(old_slug, project)
        new_dir = self.images_dir(new_slug, project)
        old_html = self.html_path(old_slug, project)
        new_html = self.html_path(new_slug, project)
        replacements = {
            self.images_url(old_slug, project): self.images_url(new_slug, project),
            self.post_url(old_slug, project): self.post_url(new_slug, project),
        }

        try:
            journal.move_dir(old_dir, new_dir)
        except OSError as e:
            raise WriteError(
                f"Could not move images of {old_slug} to {new_slug}"
            ) from e

        if old_html.is_file():
            original = old_html.read_text(encoding="utf-8")
            atomic_write_text(old_html, rewrite_references(original, replacements))
            journal.record(lambda: atomic_write_text(old_html, original))
            try:
                journal.move_file(old_html, new_html)
            except OSError as e:
                raise WriteError(f"Could not move page {old_slug} to {new_slug}") from e

        row.file = self.post_url(new_slug, project)
        row.thumbnail = rewrite_references(row.thumbnail, replacements)
        logger.info("Moved post %s to %s", old_slug, new_slug)

    def rename(self, slug: str, title: str, project: str | None = None) -> SaveResult:
        """Retitle an entry, moving it to the slug the new title yields.

        Only the title regions of the page are rewritten; other fields keep
        their current values.
        """
        title = title.strip()
        if not title:
            raise ValidationError("Title is required.")

        with index_lock(self.index_path):
            rows = self._load()
            idx = self._find(rows, slug, project)
            row = rows[idx].model_copy(deep=True)
            new_slug = unique_slug(
                slugify(title), self._taken(rows, project, exclude=idx)
            )
            journal = MoveJournal()
            try:
                self._relocate(row, slug, new_slug, project, journal)
                html_path = self.html_path(new_slug, project)
                if html_path.is_file():
                    page = html_path.read_text(encoding="utf-8")
                    journal.record(lambda: atomic_write_text(html_path, page))
                    atomic_write_text(html_path, patch_title(page, title))
                row.title = title
                rows[idx] = row
                self._save(rows)
            except WriteError:
                journal.rollback()
                raise

        return SaveResult(status="renamed", slug=new_slug, entry=row)

    def update(
        self,
        slug: str,
        form: EntryForm,
        *,
        thumbnail: Upload | None = None,
        uploads: list[Upload] | None = None,
        delete_images: list[str] | None = None,
        delete_thumbnail: bool = False,
        project: str | None = None,
    ) -> SaveResult:
        """Apply new field values to an entry, renaming it if its slug changes.

        The index row keeps its position. A ``WriteError`` after the rename
        undoes the recorded moves; image deletions are not restored.

        Raises:
            ValidationError: title missing.
            NotFoundError: no entry with ``slug``.
            WriteError: the page or index could not be written.
        """
        title = form.title.strip()
        if not title:
            raise ValidationError("Title is required.")
        self._scope(project)

        with index_lock(self.index_path):
            rows = self._load()
            idx = self._find(rows, slug, project)
            row = rows[idx].model_copy(deep=True)
            new_slug = unique_slug(
                slugify(title), self._taken(rows, project, exclude=idx)
            )
            journal = MoveJournal()
            warnings: list[str] = []

            try:
                self._relocate(row, slug, new_slug, project, journal)
                images_dir = self.images_dir(new_slug, project)
                try:
                    images_dir.mkdir(parents=True, exist_ok=True)
                except OSError as e:
                    raise WriteError(
                        f"Could not create post images folder: {new_slug}"
                    ) from e

                thumbnail_url = row.thumbnail
                try:
                    for name in delete_images or []:
                        if image_files.delete_named(images_dir, name):
                            logger.info("Deleted image %s of %s", name, new_slug)
                    if delete_thumbnail:
                        image_files.remove_thumbnail(images_dir)
                        thumbnail_url = ""
                except OSError as e:
                    raise WriteError(
                        f"Could not delete images of {new_slug}"
                    ) from e

                if thumbnail is not None and thumbnail.filename:
                    try:
                        thumbnail_url = self._store_thumbnail(
                            thumbnail, new_slug, project
                        )
                    except UploadError as e:
                        logger.warning(
                            "Thumbnail upload failed for %s: %s", new_slug, e
                        )
                        warnings.append(str(e))

                self._store_images(uploads or [], new_slug, project, warnings)

                # Folder images (current state) first, then new external URLs
                image_list = self._folder_images(new_slug, project)
                for url in self._external_urls(form):
                    if url not in image_list:
                        image_list.append(url)

                date, time = self._when(form)
                location = (
                    row.location if form.location is None else form.location.strip()
                )
                doc = self._document(form, date, time, location, image_list)

                html_path = self.html_path(new_slug, project)
                if html_path.is_file():
                    previous = html_path.read_text(encoding="utf-8")
                    page = patch_document(previous, doc)
                    journal.record(lambda: atomic_write_text(html_path, previous))
                else:
                    page = render_document(doc)
                    journal.record(lambda: html_path.unlink(missing_ok=True))
                atomic_write_text(html_path, page)

                row.title = title
                row.date = f"{date} {time}"
                row.time = None
                row.desc = form.bio.strip()
                row.location = location
                row.thumbnail = thumbnail_url
                row.file = self.post_url(new_slug, project)
                if self.project_scoped:
                    row.tag = form.tag.strip()
                    row.videos = doc.videos
                    row.content_raw = doc.content
                rows[idx] = row
                self._save(rows)
            except WriteError:
                journal.rollback()
                raise

        logger.info("Updated post %s (%d warnings)", new_slug, len(warnings))
        return SaveResult(
            status="updated", slug=new_slug, entry=row, warnings=warnings
        )

    def delete(self, slug: str, project: str | None = None) -> EntryRecord:
        """Remove an entry's page, image directory and index row.

        Raises:
            NotFoundError: no entry with ``slug`` (also on a repeated delete).
        """
        with index_lock(self.index_path):
            rows = self._load()
            idx = self._find(rows, slug, project)
            try:
                self.html_path(slug, project).unlink(missing_ok=True)
                remove_tree(self.images_dir(slug, project))
            except OSError as e:
                raise WriteError(f"Could not remove files of {slug}") from e
            removed = rows.pop(idx)
            self._save(rows)

        logger.info("Deleted post %s", slug)
        return removed

    def reparent(self, old_project: str, project: ProjectRecord) -> int:
        """Point every entry of ``old_project`` at ``project``.

        Called after the project folder itself has been moved: rewrites the
        rows' paths and project fields and the URLs embedded in each page.
        Returns the number of entries touched.
        """
        replacements = {
            f"{self.base_url}/assets/{old_project}/": (
                f"{self.base_url}/assets/{project.slug}/"
            ),
        }
        touched = 0

        with index_lock(self.index_path):
            rows = self._load()
            for row in rows:
                if row.project_slug != old_project:
                    continue
                row.project_slug = project.slug
                row.project = project.title
                row.file = rewrite_references(row.file, replacements)
                row.thumbnail = rewrite_references(row.thumbnail, replacements)
                html_path = self.html_path(row.slug, project.slug)
                if html_path.is_file():
                    page = html_path.read_text(encoding="utf-8")
                    atomic_write_text(html_path, rewrite_references(page, replacements))
                touched += 1
            if touched:
                self._save(rows)
        return touched

    def drop_project(self, project: str) -> list[EntryRecord]:
        """Remove the index rows of every entry in ``project``.

        The project folder, and with it the entries' files, is removed by the
        caller.
        """
        with index_lock(self.index_path):
            rows = self._load()
            kept = [row for row in rows if row.project_slug != project]
            dropped = [row for row in rows if row.project_slug == project]
            if dropped:
                self._save(kept)
        return dropped


# Lazy singleton: lives for the process lifetime
_blog_store: ContentStore | None = None


def get_blog_store() -> ContentStore:
    """Return the shared blog-scope store (lazy singleton)."""
    global _blog_store
    if _blog_store is None:
        settings = get_settings()
        _blog_store = ContentStore(
            settings.content_root,
            settings.blog_base_url,
            default_location=settings.default_location,
            max_upload_bytes=settings.max_upload_bytes,
        )
    return _blog_store
