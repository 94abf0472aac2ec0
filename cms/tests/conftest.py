"""Shared fixtures for folio-cms tests."""

import io

import pytest

from cms.services.images import Upload


@pytest.fixture(autouse=True)
def _reset_global_state():
    """Reset all module-level singletons and caches between tests."""
    yield

    # 1. Settings LRU cache
    from cms.config import get_settings

    get_settings.cache_clear()

    # 2. Store singletons
    import cms.services.content_store as store_mod
    import cms.services.project_catalog as catalog_mod

    store_mod._blog_store = None
    catalog_mod._project_posts = None
    catalog_mod._project_catalog = None

    # 3. Health check cache
    import cms.main as main_mod

    main_mod._health_cache = None


@pytest.fixture
def mock_settings(monkeypatch, tmp_path):
    """Provide a Settings object rooted in a temporary directory."""
    from cms.config import Settings, get_settings

    test_settings = Settings(
        content_root=tmp_path / "blog",
        blog_base_url="/blog",
        projects_root=tmp_path / "projects",
        projects_base_url="/projects",
        admin_api_key="test-admin-key",
        max_upload_bytes=1024,
    )

    get_settings.cache_clear()
    monkeypatch.setattr("cms.config.get_settings", lambda: test_settings)

    # Patch get_settings in all modules that import it directly
    # (from cms.config import get_settings creates a local binding that
    # the cms.config monkeypatch above does not affect)
    for mod_path in [
        "cms.services.content_store",
        "cms.services.project_catalog",
        "cms.routers.forms",
        "cms.main",
    ]:
        monkeypatch.setattr(f"{mod_path}.get_settings", lambda: test_settings)

    return test_settings


@pytest.fixture
def blog_store(tmp_path):
    """A blog-scope store over an empty temporary root."""
    from cms.services.content_store import ContentStore

    return ContentStore(
        tmp_path / "blog",
        "/blog",
        default_location="Hosh Issa, Beheira, Egypt",
        max_upload_bytes=1024,
    )


@pytest.fixture
def project_store(tmp_path):
    from cms.services.content_store import ContentStore

    return ContentStore(
        tmp_path / "projects",
        "/projects",
        project_scoped=True,
        back_url="/projects/index.html",
        back_label="Back to Projects",
    )


@pytest.fixture
def make_upload():
    """Build an in-memory upload."""

    def _make(filename: str = "photo.jpg", data: bytes = b"\xff\xd8jpegdata"):
        return Upload(filename=filename, stream=io.BytesIO(data))

    return _make


@pytest.fixture
def admin_headers():
    return {"X-Admin-Key": "test-admin-key"}
