"""Shared request plumbing for the content routers: admin key, form parsing."""

from fastapi import Form, Header, HTTPException, UploadFile

from cms.config import get_settings
from cms.models.content import EntryForm, ProjectForm
from cms.services.errors import (
    ContentError,
    CorruptIndexError,
    NotFoundError,
    ValidationError,
)
from cms.services.images import Upload


def require_admin(x_admin_key: str = Header(default="")) -> None:
    """Reject mutating requests that lack the configured admin key."""
    settings = get_settings()
    if not settings.admin_api_key or x_admin_key != settings.admin_api_key:
        raise HTTPException(status_code=403, detail="Invalid admin key")


def http_error(exc: ContentError) -> HTTPException:
    """Map a content store error onto an HTTP error response."""
    if isinstance(exc, ValidationError):
        return HTTPException(status_code=400, detail=str(exc))
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, CorruptIndexError):
        return HTTPException(status_code=500, detail=str(exc))
    return HTTPException(status_code=500, detail=f"Failed to save content: {exc}")


def split_list(raw: str, sep: str = ",") -> list[str]:
    return [part.strip() for part in raw.split(sep) if part.strip()]


def to_upload(file: UploadFile | None) -> Upload | None:
    if file is None or not file.filename:
        return None
    return Upload(filename=file.filename, stream=file.file)


def to_uploads(files: list[UploadFile] | None) -> list[Upload]:
    return [u for u in (to_upload(f) for f in files or []) if u is not None]


def entry_form(
    title: str = Form(""),
    date: str = Form(""),
    time: str = Form(""),
    location: str | None = Form(None),
    bio: str = Form(""),
    content: str = Form(""),
    images: str = Form("", description="Comma-separated image URLs"),
    videos: str = Form("", description="One video link per line"),
    tag: str = Form(""),
) -> EntryForm:
    """Collect entry fields from a multipart form."""
    return EntryForm(
        title=title,
        date=date,
        time=time,
        location=location,
        bio=bio,
        content=content,
        image_urls=split_list(images),
        videos=split_list(videos, "\n"),
        tag=tag,
    )


def project_form(
    title: str = Form(""),
    bio: str | None = Form(None),
    date: str = Form(""),
) -> ProjectForm:
    return ProjectForm(title=title, bio=bio, date=date)
