"""
HTTP tests for the HTML pages, JSON API and health endpoints.

The app is built with create_app(). Most tests override its dependencies
so requests run against the in-memory blob store; TestDefaultProviders
runs through the real providers with the mock backend.
"""

import asyncio
import re
import time

import pytest
from fastapi.testclient import TestClient

from blobdrop.api import dependencies
from blobdrop.api.dependencies import get_flag_cache, get_upload_service
from blobdrop.config.settings import Settings, get_settings
from blobdrop.core.credentials import CredentialResolver
from blobdrop.core.flags import FeatureFlagCache
from blobdrop.core.uploads import UploadService
from blobdrop.main import create_app
from tests.fakes import FailingBlobStore, FakeFlagSource, flag_entry


@pytest.fixture
def app(settings, upload_service, flag_cache):
    app = create_app()
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_upload_service] = lambda: upload_service
    app.dependency_overrides[get_flag_cache] = lambda: flag_cache
    return app


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


def disable_gallery(flag_cache) -> None:
    asyncio.run(flag_cache.refresh(FakeFlagSource(entries=[flag_entry("enableGallery", False)])))


def wait_for(condition, timeout: float = 2.0) -> None:
    """Poll until condition() is true; the app loop runs in another thread."""
    deadline = time.monotonic() + timeout
    while not condition():
        assert time.monotonic() < deadline, "condition not met in time"
        time.sleep(0.01)


class TestPages:
    """Tests for the browser-facing routes."""

    def test_index_renders_upload_form(self, client):
        response = client.get("/")

        assert response.status_code == 200
        assert 'enctype="multipart/form-data"' in response.text
        assert 'name="file"' in response.text

    def test_static_stylesheet_is_served(self, client):
        response = client.get("/static/css/style.css")

        assert response.status_code == 200
        assert ".success-message" in response.text

    def test_upload_stores_file_and_links_it(self, client, blob_store):
        response = client.post(
            "/upload",
            files={"file": ("a b.png", b"png bytes", "image/png")},
        )

        assert response.status_code == 200
        names = asyncio.run(blob_store.list_objects("images"))
        assert len(names) == 1
        assert re.match(r"^\d+-a_b\.png$", names[0])
        assert f'href="mock://storage/images/{names[0]}"' in response.text
        assert blob_store.get_object("images", names[0]) == (b"png bytes", "image/png")

    def test_upload_without_file_returns_400(self, client, blob_store):
        response = client.post("/upload", data={"note": "no file"})

        assert response.status_code == 400
        assert response.text == "No file uploaded."
        assert blob_store.calls == []

    def test_upload_failure_returns_500_with_error_text(self, app, client, resolver, flag_cache):
        app.dependency_overrides[get_upload_service] = lambda: UploadService(
            resolver=resolver,
            client_factory=lambda credential: FailingBlobStore(),
            container="images",
            flags=flag_cache,
        )

        response = client.post("/upload", files={"file": ("x.txt", b"x", "text/plain")})

        assert response.status_code == 500
        assert response.text.startswith("Upload failed: ")
        assert "unreachable" in response.text

    def test_missing_credential_returns_500(self, app, client, blob_store, flag_cache):
        app.dependency_overrides[get_upload_service] = lambda: UploadService(
            resolver=CredentialResolver.from_sources(None, None, "StorageAccountKey"),
            client_factory=lambda credential: blob_store,
            container="images",
            flags=flag_cache,
        )

        response = client.post("/upload", files={"file": ("x.txt", b"x", "text/plain")})

        assert response.status_code == 500
        assert "No storage credential" in response.text

    def test_gallery_lists_uploads(self, client):
        client.post("/upload", files={"file": ("cat.gif", b"gif", "image/gif")})

        response = client.get("/gallery")

        assert response.status_code == 200
        assert re.search(r"mock://storage/images/\d+-cat\.gif", response.text)

    def test_gallery_escapes_names(self, client, blob_store):
        # Names normally come from build_blob_name; a hostile one written
        # directly to the store must still be escaped.
        asyncio.run(blob_store.ensure_container("images"))
        asyncio.run(blob_store.put_object("images", "<script>", b"", "text/plain"))

        response = client.get("/gallery")

        assert "<script>" not in response.text
        assert "&lt;script&gt;" in response.text

    def test_gallery_disabled_by_flag_returns_404(self, client, blob_store, flag_cache):
        disable_gallery(flag_cache)

        response = client.get("/gallery")

        assert response.status_code == 404
        assert blob_store.calls == []

    def test_gallery_failure_returns_500(self, app, client, resolver, flag_cache):
        app.dependency_overrides[get_upload_service] = lambda: UploadService(
            resolver=resolver,
            client_factory=lambda credential: FailingBlobStore(),
            container="images",
            flags=flag_cache,
        )

        response = client.get("/gallery")

        assert response.status_code == 500
        assert response.text.startswith("Failed to list images: ")


class TestFilesApi:
    """Tests for the JSON API."""

    def test_upload_and_list(self, client):
        created = client.post(
            "/api/v1/files",
            files={"file": ("a b.png", b"png", "image/png")},
        )

        assert created.status_code == 201
        body = created.json()
        assert re.match(r"^\d+-a_b\.png$", body["name"])

        listed = client.get("/api/v1/files").json()
        assert listed["container"] == "images"
        assert listed["count"] == 1
        assert listed["files"] == [body]

    def test_upload_without_file_returns_400(self, client):
        response = client.post("/api/v1/files", data={"note": "no file"})

        assert response.status_code == 400
        assert response.json()["detail"] == "No file uploaded."

    def test_upload_failure_returns_500_with_error_text(self, app, client, resolver, flag_cache):
        app.dependency_overrides[get_upload_service] = lambda: UploadService(
            resolver=resolver,
            client_factory=lambda credential: FailingBlobStore(),
            container="images",
            flags=flag_cache,
        )

        response = client.post("/api/v1/files", files={"file": ("x.txt", b"x", "text/plain")})

        assert response.status_code == 500
        assert response.json()["detail"].startswith("Upload failed: ")
        assert "unreachable" in response.json()["detail"]

    def test_list_disabled_by_flag_returns_404(self, client, flag_cache):
        disable_gallery(flag_cache)

        response = client.get("/api/v1/files")

        assert response.status_code == 404
        assert "enableGallery" in response.json()["detail"]

    def test_flags_snapshot(self, client, flag_cache):
        assert client.get("/api/v1/flags").json() == {
            "flags": {},
            "populated": False,
            "last_refreshed": None,
        }

        disable_gallery(flag_cache)
        body = client.get("/api/v1/flags").json()

        assert body["flags"] == {"enableGallery": False}
        assert body["populated"] is True


class TestHealth:
    """Tests for health endpoints."""

    def test_liveness(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "ok"
        assert response.json()["details"]["storage_backend"] == "mock"

    def test_ready_with_complete_config(self, client):
        response = client.get("/health/ready")

        assert response.status_code == 200
        assert response.json()["status"] == "ready"

    def test_not_ready_without_credential_source(self, app, client):
        app.dependency_overrides[get_settings] = lambda: Settings(
            _env_file=None,
            storage_backend="azure",
            storage_account_name="acct",
        )

        response = client.get("/health/ready")

        assert response.status_code == 503
        body = response.json()
        assert body["status"] == "not_ready"
        assert "STORAGE_ACCOUNT_KEY or KEY_VAULT_URL" in body["checks"][0]["error"]


class TestLifespan:
    """Tests for startup and shutdown."""

    def test_starts_without_flag_refresher_when_unconfigured(self, app, monkeypatch):
        monkeypatch.delenv("APP_CONFIG_ENDPOINT", raising=False)
        get_settings.cache_clear()
        try:
            with TestClient(app) as client:
                assert client.get("/health").status_code == 200
                assert app.state.flag_refresher is None
        finally:
            get_settings.cache_clear()

    def test_flag_refresher_populates_cache_and_closes_source(self, app, flag_cache, monkeypatch):
        source = FakeFlagSource(entries=[flag_entry("enableGallery", False)])
        monkeypatch.setenv("APP_CONFIG_ENDPOINT", "https://cfg.azconfig.io")
        monkeypatch.setattr(dependencies, "_flag_cache", flag_cache)
        monkeypatch.setattr(dependencies, "_flag_source", source)
        get_settings.cache_clear()
        try:
            with TestClient(app) as client:
                assert app.state.flag_refresher.running
                wait_for(lambda: flag_cache.is_populated)

                assert source.prefixes[0] == ".appconfig.featureflag/"
                assert client.get("/api/v1/flags").json()["flags"] == {"enableGallery": False}
                assert client.get("/gallery").status_code == 404

            assert not app.state.flag_refresher.running
            assert source.closed
            assert dependencies._flag_source is None
        finally:
            get_settings.cache_clear()


@pytest.fixture
def mock_backend_env(monkeypatch):
    """Environment for an app wired through the real providers, mock backend."""
    monkeypatch.setenv("STORAGE_BACKEND", "mock")
    monkeypatch.setenv("STORAGE_ACCOUNT_KEY", "env-key")
    monkeypatch.setenv("CONTAINER_NAME", "uploads")
    monkeypatch.delenv("APP_CONFIG_ENDPOINT", raising=False)
    monkeypatch.delenv("KEY_VAULT_URL", raising=False)
    monkeypatch.setattr(dependencies, "_flag_cache", FeatureFlagCache())
    monkeypatch.setattr(dependencies, "_mock_blob_store", None)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class TestDefaultProviders:
    """Tests that run without dependency overrides."""

    def test_upload_and_list_through_mock_backend(self, mock_backend_env):
        with TestClient(create_app()) as client:
            created = client.post(
                "/api/v1/files",
                files={"file": ("My Photo (1).PNG", b"png", "image/png")},
            )
            listed = client.get("/api/v1/files").json()
            page = client.get("/gallery")

        assert created.status_code == 201
        name = created.json()["name"]
        assert re.match(r"^\d+-My_Photo_1\.PNG$", name)
        assert created.json()["url"] == f"mock://storage/uploads/{name}"
        assert listed["container"] == "uploads"
        assert [f["name"] for f in listed["files"]] == [name]
        assert page.status_code == 200
        assert name in page.text

    def test_shared_clients_are_reused(self, monkeypatch):
        monkeypatch.delenv("KEY_VAULT_URL", raising=False)
        monkeypatch.delenv("APP_CONFIG_ENDPOINT", raising=False)
        monkeypatch.setattr(dependencies, "_secret_store", None)
        monkeypatch.setattr(dependencies, "_flag_source", None)
        settings = Settings(
            _env_file=None,
            key_vault_url="https://vault.vault.azure.net",
            app_config_endpoint="https://cfg.azconfig.io",
        )

        secret_store = dependencies.get_secret_store(settings)
        flag_source = dependencies.get_flag_source(settings)

        assert secret_store is dependencies.get_secret_store(settings)
        assert flag_source is dependencies.get_flag_source(settings)
        assert dependencies.get_secret_store(Settings(_env_file=None)) is None
        assert dependencies.get_flag_source(Settings(_env_file=None)) is None
