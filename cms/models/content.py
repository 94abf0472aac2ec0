"""Content index data models."""

from pathlib import PurePosixPath

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class EntryRecord(BaseModel):
    """One row of a posts index.

    The slug is not stored: it is the filename stem of ``file``. Rows in the
    project-scoped index also carry the parent project fields and the raw
    content so edit mode can round-trip it exactly.

    Older project rows name the page ``path``, the summary ``bio`` and keep
    the time apart from the date; they are read as ``file``, ``desc`` and
    ``time`` and written back under the current keys.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    title: str
    date: str = ""
    time: str | None = None
    thumbnail: str = ""
    file: str = Field(validation_alias=AliasChoices("file", "path"))
    desc: str = Field(default="", validation_alias=AliasChoices("desc", "bio"))
    location: str = ""

    # Project scope only
    tag: str | None = None
    project: str | None = None
    project_slug: str | None = None
    videos: list[str] | None = None
    content_raw: str | None = Field(default=None, alias="contentRaw")

    @property
    def slug(self) -> str:
        return PurePosixPath(self.file).stem

    def to_json(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class ProjectRecord(BaseModel):
    """One row of the project catalog."""

    model_config = ConfigDict(extra="allow")

    title: str
    slug: str
    bio: str = ""
    date: str = ""
    thumbnail: str = ""

    def to_json(self) -> dict:
        return self.model_dump(mode="json", exclude_none=True)


class EntryForm(BaseModel):
    """Submitted field values for creating or updating an entry."""

    title: str = ""
    date: str = ""
    time: str = ""
    location: str | None = None
    bio: str = ""
    content: str = ""
    image_urls: list[str] = []
    videos: list[str] = []
    tag: str = ""


class ProjectForm(BaseModel):
    """Submitted field values for creating or updating a project."""

    title: str = ""
    bio: str | None = None
    date: str = ""


class EntryView(BaseModel):
    """Edit-mode read-back of an entry, re-extracted from its HTML."""

    slug: str
    title: str
    date: str
    time: str
    location: str
    bio: str
    content: str
    thumbnail: str
    images: list[str]
    file: str
    project_slug: str | None = None
    tag: str | None = None
    videos: list[str] = []


class SaveResult(BaseModel):
    """Outcome of a create/update/rename.

    A non-empty ``warnings`` list means the entry was saved but some uploaded
    assets could not be stored.
    """

    status: str
    slug: str
    entry: EntryRecord
    warnings: list[str] = []


class ProjectResult(BaseModel):
    """Outcome of a project create/update."""

    status: str
    project: ProjectRecord
    warnings: list[str] = []


class EntryIndex(BaseModel):
    """Entry listing."""

    entries: list[EntryRecord]
    total: int


class ProjectIndex(BaseModel):
    """Project listing."""

    projects: list[ProjectRecord]
    total: int
