"""Blog post endpoints."""

import logging

from fastapi import APIRouter, Depends, File, Form, Path, Query, UploadFile

from cms.models.content import EntryForm, EntryIndex, EntryView, SaveResult
from cms.routers.forms import (
    entry_form,
    http_error,
    require_admin,
    to_upload,
    to_uploads,
)
from cms.services.content_store import get_blog_store
from cms.services.errors import ContentError
from cms.services.slugs import SLUG_PATTERN

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/posts", tags=["posts"])


@router.get("", response_model=EntryIndex)
def list_posts(
    limit: int = Query(default=0, ge=0, le=500, description="0 returns every post"),
    offset: int = Query(default=0, ge=0),
):
    """Get the post index in creation order."""
    try:
        entries = get_blog_store().list_entries()
    except ContentError as e:
        raise http_error(e) from e
    total = len(entries)
    if offset > 0:
        entries = entries[offset:]
    if limit > 0:
        entries = entries[:limit]
    return EntryIndex(entries=entries, total=total)


@router.get("/{slug}", response_model=EntryView)
def get_post_for_edit(
    slug: str = Path(..., pattern=SLUG_PATTERN, max_length=200),
):
    """Get a post's editable fields, re-extracted from its page."""
    try:
        return get_blog_store().read_for_edit(slug)
    except ContentError as e:
        raise http_error(e) from e


@router.post(
    "",
    response_model=SaveResult,
    status_code=201,
    dependencies=[Depends(require_admin)],
)
def create_post(
    form: EntryForm = Depends(entry_form),
    thumbnail: UploadFile | None = File(None),
    upload_images: list[UploadFile] | None = File(None),
):
    """Create a post from a multipart form."""
    try:
        result = get_blog_store().create(
            form,
            thumbnail=to_upload(thumbnail),
            uploads=to_uploads(upload_images),
        )
    except ContentError as e:
        raise http_error(e) from e
    if result.warnings:
        logger.warning("Post %s saved with warnings: %s", result.slug, result.warnings)
    return result


@router.put(
    "/{slug}",
    response_model=SaveResult,
    dependencies=[Depends(require_admin)],
)
def update_post(
    slug: str = Path(..., pattern=SLUG_PATTERN, max_length=200),
    form: EntryForm = Depends(entry_form),
    thumbnail: UploadFile | None = File(None),
    upload_images: list[UploadFile] | None = File(None),
    delete_images: list[str] | None = Form(None),
    delete_thumbnail: bool = Form(False),
):
    """Update a post; a new title moves it to a new slug."""
    try:
        return get_blog_store().update(
            slug,
            form,
            thumbnail=to_upload(thumbnail),
            uploads=to_uploads(upload_images),
            delete_images=delete_images or [],
            delete_thumbnail=delete_thumbnail,
        )
    except ContentError as e:
        raise http_error(e) from e


@router.post(
    "/{slug}/rename",
    response_model=SaveResult,
    dependencies=[Depends(require_admin)],
)
def rename_post(
    slug: str = Path(..., pattern=SLUG_PATTERN, max_length=200),
    title: str = Form(""),
):
    """Retitle a post without touching its other fields."""
    try:
        return get_blog_store().rename(slug, title)
    except ContentError as e:
        raise http_error(e) from e


@router.delete("/{slug}", dependencies=[Depends(require_admin)])
def delete_post(
    slug: str = Path(..., pattern=SLUG_PATTERN, max_length=200),
):
    """Delete a post's page, images and index row."""
    try:
        get_blog_store().delete(slug)
    except ContentError as e:
        raise http_error(e) from e
    return {"status": "deleted", "slug": slug}
