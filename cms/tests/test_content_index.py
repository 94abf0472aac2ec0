"""Tests for JSON index persistence."""

import json

import pytest

from cms.models.content import EntryRecord, ProjectRecord
from cms.services.content_index import ensure_index, read_index, write_index
from cms.services.errors import CorruptIndexError


def test_missing_file_is_empty(tmp_path):
    assert read_index(tmp_path / "posts.json", EntryRecord) == []


def test_empty_file_is_empty(tmp_path):
    path = tmp_path / "posts.json"
    path.write_text("", encoding="utf-8")
    assert read_index(path, EntryRecord) == []


@pytest.mark.parametrize(
    "content",
    [
        "{not json",
        '{"title": "object not array"}',
        '[{"date": "no title or file"}]',
    ],
)
def test_corrupt_index_raises(tmp_path, content):
    path = tmp_path / "posts.json"
    path.write_text(content, encoding="utf-8")
    with pytest.raises(CorruptIndexError):
        read_index(path, EntryRecord)


def test_write_then_read_keeps_order_and_extras(tmp_path):
    path = tmp_path / "posts.json"
    rows = [
        EntryRecord(title="B", file="/blog/assets/posts/b.html"),
        EntryRecord(title="A", file="/blog/assets/posts/a.html", views=3),
    ]
    write_index(path, rows)

    loaded = read_index(path, EntryRecord)
    assert [row.slug for row in loaded] == ["b", "a"]
    assert loaded[1].model_extra == {"views": 3}


def test_write_format(tmp_path):
    path = tmp_path / "projects.json"
    write_index(path, [ProjectRecord(title="Jardín", slug="jardin")])

    raw = path.read_text(encoding="utf-8")
    assert raw.startswith("[\n    {")
    assert "Jardín" in raw
    assert raw.endswith("\n")
    assert json.loads(raw)[0]["slug"] == "jardin"


def test_project_rows_alias_raw_content(tmp_path):
    path = tmp_path / "posts.json"
    row = EntryRecord(
        title="Day",
        file="/projects/assets/garden/posts/day.html",
        project_slug="garden",
        content_raw="<p>x</p>",
    )
    write_index(path, [row])

    data = json.loads(path.read_text(encoding="utf-8"))[0]
    assert data["contentRaw"] == "<p>x</p>"
    assert "content_raw" not in data
    assert "tag" not in data
    assert read_index(path, EntryRecord)[0].content_raw == "<p>x</p>"


def test_older_project_rows_are_readable(tmp_path):
    path = tmp_path / "posts.json"
    path.write_text(
        json.dumps(
            [
                {
                    "title": "Old",
                    "date": "2023-02-01",
                    "time": "10:00",
                    "bio": "Summary",
                    "location": "",
                    "thumbnail": "",
                    "path": "/projects/assets/g/posts/old.html",
                    "project": "G",
                    "project_slug": "g",
                    "tag": "",
                    "videos": [],
                    "contentRaw": "",
                }
            ]
        ),
        encoding="utf-8",
    )

    row = read_index(path, EntryRecord)[0]
    assert row.slug == "old"
    assert row.file == "/projects/assets/g/posts/old.html"
    assert row.desc == "Summary"
    assert row.time == "10:00"

    write_index(path, [row])
    data = json.loads(path.read_text(encoding="utf-8"))[0]
    assert data["file"] == "/projects/assets/g/posts/old.html"
    assert data["desc"] == "Summary"
    assert "path" not in data


def test_ensure_index(tmp_path):
    path = tmp_path / "nested" / "posts.json"
    ensure_index(path)
    assert path.read_text(encoding="utf-8") == "[]\n"

    path.write_text('[{"title": "x", "file": "/x.html"}]', encoding="utf-8")
    ensure_index(path)
    assert len(read_index(path, EntryRecord)) == 1
