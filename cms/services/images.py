"""Image directory housekeeping: naming, storing uploads, listing."""

import logging
import os
import re
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import BinaryIO
from urllib.parse import urlparse

from cms.services.errors import UploadError

logger = logging.getLogger(__name__)

THUMBNAIL_STEM = "thumbnail"
IMAGE_PREFIX = "image"
DEFAULT_EXTENSION = "jpg"
PLACEHOLDER_IMAGES = ("example1.jpg", "example2.jpg")

_EXT_RE = re.compile(r"[^a-z0-9]")
_NUMBER_RE = re.compile(r"(\d+)")
_ABSOLUTE_URL_RE = re.compile(r"^https?://", re.IGNORECASE)

_CHUNK_SIZE = 64 * 1024


@dataclass
class Upload:
    """An uploaded file: client-side name plus a readable binary stream."""

    filename: str
    stream: BinaryIO


def clean_extension(filename: str) -> str:
    """Lowercased extension restricted to ``[a-z0-9]``, ``jpg`` if none."""
    ext = _EXT_RE.sub("", PurePosixPath(filename).suffix.lower())
    return ext or DEFAULT_EXTENSION


def _natural_key(name: str) -> list:
    return [int(part) if part.isdigit() else part for part in _NUMBER_RE.split(name)]


def list_images(directory: Path) -> list[str]:
    """File names in ``directory`` in natural order, thumbnails excluded."""
    if not directory.is_dir():
        return []
    names = [
        p.name
        for p in directory.iterdir()
        if p.is_file()
        and not p.name.startswith(".")
        and p.stem != THUMBNAIL_STEM
    ]
    return sorted(names, key=_natural_key)


def remove_thumbnail(directory: Path) -> bool:
    """Delete every stored ``thumbnail.*`` file; True if one existed."""
    removed = False
    for path in directory.glob(f"{THUMBNAIL_STEM}.*"):
        if path.is_file():
            path.unlink()
            removed = True
    return removed


def next_image_path(directory: Path, ext: str) -> Path:
    """Next free ``image<N>[-<k>].<ext>`` path.

    N is one more than the number of ``image*`` files currently in the
    directory; the ``-<k>`` suffix (k >= 2) only appears to dodge a file
    that already has that name.
    """
    existing = [p for p in directory.glob(f"{IMAGE_PREFIX}*") if p.is_file()]
    index = len(existing) + 1
    target = directory / f"{IMAGE_PREFIX}{index}.{ext}"
    k = 1
    while target.exists():
        k += 1
        target = directory / f"{IMAGE_PREFIX}{index}-{k}.{ext}"
    return target


def store_upload(upload: Upload, target: Path, max_bytes: int = 0) -> Path:
    """Stream an upload to ``target`` (written atomically).

    Raises:
        UploadError: if the stream cannot be read, is over ``max_bytes``
            (when non-zero), or the file cannot be written.
    """
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{target.name}.", dir=target.parent)
        try:
            written = 0
            with os.fdopen(fd, "wb") as fh:
                while chunk := upload.stream.read(_CHUNK_SIZE):
                    written += len(chunk)
                    if max_bytes and written > max_bytes:
                        raise UploadError(
                            f"Upload too large: {upload.filename} "
                            f"(limit {max_bytes} bytes)"
                        )
                    fh.write(chunk)
            os.replace(tmp_name, target)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
    except OSError as e:
        logger.warning("Failed storing upload %s: %s", upload.filename, e)
        raise UploadError(f"Failed uploading image: {upload.filename}") from e
    return target


def store_thumbnail(upload: Upload, directory: Path, max_bytes: int = 0) -> Path:
    """Store ``upload`` as ``thumbnail.<ext>``, replacing any previous thumbnail."""
    target = directory / f"{THUMBNAIL_STEM}.{clean_extension(upload.filename)}"
    store_upload(upload, target, max_bytes)
    for stale in directory.glob(f"{THUMBNAIL_STEM}.*"):
        if stale != target and stale.is_file():
            stale.unlink()
    return target


def store_image(upload: Upload, directory: Path, max_bytes: int = 0) -> Path:
    """Store ``upload`` under the next free ``image<N>`` name."""
    target = next_image_path(directory, clean_extension(upload.filename))
    return store_upload(upload, target, max_bytes)


def copy_as_thumbnail(source: Path) -> Path:
    """Copy an already stored image to ``thumbnail.<ext>`` beside it."""
    target = source.parent / f"{THUMBNAIL_STEM}.{clean_extension(source.name)}"
    try:
        shutil.copyfile(source, target)
    except OSError as e:
        raise UploadError(f"Failed copying {source.name} as thumbnail") from e
    return target


def delete_named(directory: Path, name_or_url: str) -> bool:
    """Delete the file whose basename matches ``name_or_url`` (a name or URL)."""
    name = PurePosixPath(urlparse(name_or_url.strip()).path).name
    if not name or name in (".", ".."):
        return False
    path = directory / name
    if path.is_file():
        path.unlink()
        return True
    return False


def absolute_image_url(url: str, base_url: str) -> str:
    """Site-relative absolute form of a manually supplied image URL."""
    url = url.strip()
    base = base_url.rstrip("/")
    if not _ABSOLUTE_URL_RE.match(url) and not (base and url.startswith(f"{base}/")):
        url = f"{base}/{url.lstrip('/')}"
    return url.replace(" ", "-")


def placeholder_images(base_url: str) -> list[str]:
    base = base_url.rstrip("/")
    return [f"{base}/assets/images/{name}" for name in PLACEHOLDER_IMAGES]
