"""Tests for the blog post endpoints."""

from httpx import ASGITransport, AsyncClient


def _client():
    from cms.main import app

    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


async def test_create_requires_admin_key(mock_settings):
    async with _client() as client:
        response = await client.post("/api/cms/posts", data={"title": "My Trip"})
        wrong = await client.post(
            "/api/cms/posts",
            data={"title": "My Trip"},
            headers={"X-Admin-Key": "nope"},
        )

    assert response.status_code == 403
    assert wrong.status_code == 403
    assert not (mock_settings.content_root / "posts.json").exists()


async def test_create_and_list_posts(mock_settings, admin_headers):
    async with _client() as client:
        created = await client.post(
            "/api/cms/posts",
            data={
                "title": "My Trip!",
                "date": "2024-05-01",
                "time": "09:30",
                "bio": "Hello\nWorld",
                "content": "<p>hi</p>",
            },
            files=[
                ("upload_images", ("a.jpg", b"jpegdata", "image/jpeg")),
                ("upload_images", ("b.jpg", b"jpegdata", "image/jpeg")),
            ],
            headers=admin_headers,
        )
        listing = await client.get("/api/cms/posts")

    assert created.status_code == 201
    body = created.json()
    assert body["slug"] == "my-trip"
    assert body["warnings"] == []
    assert body["entry"]["thumbnail"] == "/blog/assets/images/my-trip/thumbnail.jpg"

    assert listing.status_code == 200
    data = listing.json()
    assert data["total"] == 1
    assert data["entries"][0]["file"] == "/blog/assets/posts/my-trip.html"

    images = mock_settings.content_root / "assets" / "images" / "my-trip"
    assert sorted(p.name for p in images.iterdir()) == [
        "image1.jpg",
        "image2.jpg",
        "thumbnail.jpg",
    ]


async def test_list_pagination(mock_settings, admin_headers):
    async with _client() as client:
        for title in ("One", "Two", "Three"):
            await client.post(
                "/api/cms/posts", data={"title": title}, headers=admin_headers
            )
        response = await client.get(
            "/api/cms/posts", params={"limit": 1, "offset": 1}
        )

    data = response.json()
    assert data["total"] == 3
    assert [e["title"] for e in data["entries"]] == ["Two"]


async def test_create_without_title_is_400(mock_settings, admin_headers):
    async with _client() as client:
        response = await client.post(
            "/api/cms/posts", data={"title": "  "}, headers=admin_headers
        )
    assert response.status_code == 400
    assert response.json()["detail"] == "Title is required."


async def test_edit_round_trip(mock_settings, admin_headers):
    async with _client() as client:
        await client.post(
            "/api/cms/posts",
            data={
                "title": "My Trip",
                "date": "2024-05-01",
                "time": "09:30",
                "bio": "Hello\nWorld",
                "content": "<p>hi</p>",
                "location": "Giza",
            },
            headers=admin_headers,
        )
        response = await client.get("/api/cms/posts/my-trip")

    assert response.status_code == 200
    view = response.json()
    assert view["bio"] == "Hello\nWorld"
    assert view["content"] == "<p>hi</p>"
    assert view["date"] == "2024-05-01"
    assert view["time"] == "09:30"
    assert view["location"] == "Giza"


async def test_get_unknown_post_is_404(mock_settings):
    async with _client() as client:
        response = await client.get("/api/cms/posts/ghost")
    assert response.status_code == 404


async def test_invalid_slug_is_422(mock_settings):
    async with _client() as client:
        response = await client.get("/api/cms/posts/Not_A_Slug")
    assert response.status_code == 422


async def test_update_renames(mock_settings, admin_headers):
    async with _client() as client:
        await client.post(
            "/api/cms/posts", data={"title": "My Trip"}, headers=admin_headers
        )
        response = await client.put(
            "/api/cms/posts/my-trip",
            data={"title": "Epic Trip", "delete_thumbnail": "true"},
            headers=admin_headers,
        )

    assert response.status_code == 200
    assert response.json()["slug"] == "epic-trip"
    posts_dir = mock_settings.content_root / "assets" / "posts"
    assert [p.name for p in posts_dir.iterdir()] == ["epic-trip.html"]


async def test_rename_endpoint(mock_settings, admin_headers):
    async with _client() as client:
        await client.post(
            "/api/cms/posts", data={"title": "My Trip"}, headers=admin_headers
        )
        response = await client.post(
            "/api/cms/posts/my-trip/rename",
            data={"title": "Other Trip"},
            headers=admin_headers,
        )

    assert response.status_code == 200
    assert response.json()["status"] == "renamed"
    assert response.json()["slug"] == "other-trip"


async def test_delete_post(mock_settings, admin_headers):
    async with _client() as client:
        await client.post(
            "/api/cms/posts", data={"title": "My Trip"}, headers=admin_headers
        )
        deleted = await client.delete("/api/cms/posts/my-trip", headers=admin_headers)
        again = await client.delete("/api/cms/posts/my-trip", headers=admin_headers)

    assert deleted.status_code == 200
    assert deleted.json() == {"status": "deleted", "slug": "my-trip"}
    assert again.status_code == 404


async def test_corrupt_index_is_500(mock_settings, admin_headers):
    mock_settings.content_root.mkdir(parents=True)
    (mock_settings.content_root / "posts.json").write_text("oops", encoding="utf-8")

    async with _client() as client:
        listing = await client.get("/api/cms/posts")
        created = await client.post(
            "/api/cms/posts", data={"title": "My Trip"}, headers=admin_headers
        )

    assert listing.status_code == 500
    assert created.status_code == 500
    assert (mock_settings.content_root / "posts.json").read_text() == "oops"
