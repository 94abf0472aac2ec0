"""Project endpoints: the catalog plus each project's posts."""

import logging

from fastapi import APIRouter, Depends, File, Form, Path, UploadFile

from cms.models.content import (
    EntryForm,
    EntryIndex,
    EntryView,
    ProjectForm,
    ProjectIndex,
    ProjectResult,
    SaveResult,
)
from cms.routers.forms import (
    entry_form,
    http_error,
    project_form,
    require_admin,
    to_upload,
    to_uploads,
)
from cms.services.errors import ContentError
from cms.services.project_catalog import get_project_catalog, get_project_posts
from cms.services.slugs import SLUG_PATTERN

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/projects", tags=["projects"])


@router.get("", response_model=ProjectIndex)
def list_projects():
    """Get every project in creation order."""
    try:
        projects = get_project_catalog().list_projects()
    except ContentError as e:
        raise http_error(e) from e
    return ProjectIndex(projects=projects, total=len(projects))


@router.post(
    "",
    response_model=ProjectResult,
    status_code=201,
    dependencies=[Depends(require_admin)],
)
def create_project(
    form: ProjectForm = Depends(project_form),
    thumbnail: UploadFile | None = File(None),
):
    try:
        return get_project_catalog().create_project(
            form, thumbnail=to_upload(thumbnail)
        )
    except ContentError as e:
        raise http_error(e) from e


@router.put(
    "/{slug}",
    response_model=ProjectResult,
    dependencies=[Depends(require_admin)],
)
def update_project(
    slug: str = Path(..., pattern=SLUG_PATTERN, max_length=200),
    form: ProjectForm = Depends(project_form),
    thumbnail: UploadFile | None = File(None),
):
    """Update a project; a new title moves its folder and all its posts."""
    try:
        return get_project_catalog().update_project(
            slug, form, thumbnail=to_upload(thumbnail)
        )
    except ContentError as e:
        raise http_error(e) from e


@router.delete("/{slug}", dependencies=[Depends(require_admin)])
def delete_project(
    slug: str = Path(..., pattern=SLUG_PATTERN, max_length=200),
):
    """Delete a project together with every post in it."""
    try:
        get_project_catalog().delete_project(slug)
    except ContentError as e:
        raise http_error(e) from e
    return {"status": "deleted", "slug": slug}


@router.get("/{project}/posts", response_model=EntryIndex)
def list_project_posts(
    project: str = Path(..., pattern=SLUG_PATTERN, max_length=200),
):
    try:
        get_project_catalog().get_project(project)
        entries = get_project_posts().list_entries(project)
    except ContentError as e:
        raise http_error(e) from e
    return EntryIndex(entries=entries, total=len(entries))


@router.get("/{project}/posts/{slug}", response_model=EntryView)
def get_project_post_for_edit(
    project: str = Path(..., pattern=SLUG_PATTERN, max_length=200),
    slug: str = Path(..., pattern=SLUG_PATTERN, max_length=200),
):
    try:
        return get_project_posts().read_for_edit(slug, project)
    except ContentError as e:
        raise http_error(e) from e


@router.post(
    "/{project}/posts",
    response_model=SaveResult,
    status_code=201,
    dependencies=[Depends(require_admin)],
)
def create_project_post(
    project: str = Path(..., pattern=SLUG_PATTERN, max_length=200),
    form: EntryForm = Depends(entry_form),
    thumbnail: UploadFile | None = File(None),
    upload_images: list[UploadFile] | None = File(None),
):
    """Create a post inside a project."""
    try:
        record = get_project_catalog().get_project(project)
        result = get_project_posts().create(
            form,
            thumbnail=to_upload(thumbnail),
            uploads=to_uploads(upload_images),
            project=record,
        )
    except ContentError as e:
        raise http_error(e) from e
    if result.warnings:
        logger.warning(
            "Project post %s/%s saved with warnings: %s",
            project,
            result.slug,
            result.warnings,
        )
    return result


@router.put(
    "/{project}/posts/{slug}",
    response_model=SaveResult,
    dependencies=[Depends(require_admin)],
)
def update_project_post(
    project: str = Path(..., pattern=SLUG_PATTERN, max_length=200),
    slug: str = Path(..., pattern=SLUG_PATTERN, max_length=200),
    form: EntryForm = Depends(entry_form),
    thumbnail: UploadFile | None = File(None),
    upload_images: list[UploadFile] | None = File(None),
    delete_images: list[str] | None = Form(None),
    delete_thumbnail: bool = Form(False),
):
    try:
        return get_project_posts().update(
            slug,
            form,
            thumbnail=to_upload(thumbnail),
            uploads=to_uploads(upload_images),
            delete_images=delete_images or [],
            delete_thumbnail=delete_thumbnail,
            project=project,
        )
    except ContentError as e:
        raise http_error(e) from e


@router.post(
    "/{project}/posts/{slug}/rename",
    response_model=SaveResult,
    dependencies=[Depends(require_admin)],
)
def rename_project_post(
    project: str = Path(..., pattern=SLUG_PATTERN, max_length=200),
    slug: str = Path(..., pattern=SLUG_PATTERN, max_length=200),
    title: str = Form(""),
):
    try:
        return get_project_posts().rename(slug, title, project)
    except ContentError as e:
        raise http_error(e) from e


@router.delete("/{project}/posts/{slug}", dependencies=[Depends(require_admin)])
def delete_project_post(
    project: str = Path(..., pattern=SLUG_PATTERN, max_length=200),
    slug: str = Path(..., pattern=SLUG_PATTERN, max_length=200),
):
    try:
        get_project_posts().delete(slug, project)
    except ContentError as e:
        raise http_error(e) from e
    return {"status": "deleted", "project": project, "slug": slug}
