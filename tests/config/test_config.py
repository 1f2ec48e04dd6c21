from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from driververify.config import (
    ConfigurationError,
    MissingConfigurationError,
    get_blob_storage_config,
    get_database_config,
    get_discovery_config,
    get_primary_api_config,
    require_env_var,
    require_env_vars,
)
from driververify.config.storage import StorageConfig, get_storage_config

if TYPE_CHECKING:
    from pathlib import Path


def test_require_env_vars_returns_values(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EXAMPLE_VAR", "value")

    assert require_env_vars(["EXAMPLE_VAR"]) == {"EXAMPLE_VAR": "value"}


def test_require_env_vars_lists_every_missing_name(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("MISSING_A", raising=False)
    monkeypatch.setenv("MISSING_B", "   ")

    with pytest.raises(MissingConfigurationError) as exc:
        require_env_vars(["MISSING_B", "MISSING_A"])

    assert "MISSING_A, MISSING_B" in str(exc.value)


def test_require_env_var_handles_blank_values(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EXAMPLE_VAR", "")

    with pytest.raises(MissingConfigurationError):
        require_env_var("EXAMPLE_VAR")


def test_primary_api_config_normalises_url_and_token(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DRIVER_API_BASE_URL", "https://api.example.test/v1")
    monkeypatch.setenv("DRIVER_API_TOKEN", "secret")

    config = get_primary_api_config()

    assert config.base_url == "https://api.example.test/v1/"
    assert config.resilience.base_url == config.base_url
    assert config.resilience.cache is None
    assert config.resilience.default_headers is not None
    assert config.resilience.default_headers["Authorization"] == "Bearer secret"


def test_primary_api_config_without_token(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DRIVER_API_BASE_URL", "https://api.example.test/v1/")
    monkeypatch.delenv("DRIVER_API_TOKEN", raising=False)

    config = get_primary_api_config()

    assert config.token is None
    assert config.resilience.default_headers is not None
    assert "Authorization" not in config.resilience.default_headers


def test_blob_storage_config_requires_bucket(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("BLOB_STORAGE_BUCKET", raising=False)

    with pytest.raises(MissingConfigurationError, match="BLOB_STORAGE_BUCKET"):
        get_blob_storage_config()


def test_blob_storage_config_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("BLOB_STORAGE_BUCKET", "fleet-app.appspot.com")
    monkeypatch.delenv("BLOB_STORAGE_BASE_URL", raising=False)
    monkeypatch.delenv("BLOB_STORAGE_TOKEN", raising=False)
    monkeypatch.setenv("BLOB_STORAGE_LISTINGS_PER_SECOND", "5")

    config = get_blob_storage_config()

    assert config.bucket == "fleet-app.appspot.com"
    assert config.download_base_url.endswith("/")
    assert config.resilience.ratelimit is not None
    assert config.resilience.ratelimit.max_calls == 5
    assert config.resilience.cache is not None
    assert config.resilience.default_headers is None


def test_discovery_config_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "DRIVERVERIFY_ADAPTER_TIMEOUT",
        "DRIVERVERIFY_RESYNC_CONCURRENCY",
        "DRIVERVERIFY_ADMIN_ID",
    ):
        monkeypatch.delenv(name, raising=False)

    config = get_discovery_config()

    assert config.adapter_timeout_seconds == 15.0
    assert config.resync_concurrency == 4
    assert config.admin_id == "admin"


@pytest.mark.parametrize(
    ("name", "value"),
    [
        ("DRIVERVERIFY_RESYNC_CONCURRENCY", "many"),
        ("DRIVERVERIFY_RESYNC_CONCURRENCY", "0"),
        ("DRIVERVERIFY_ADAPTER_TIMEOUT", "-1"),
    ],
)
def test_discovery_config_rejects_invalid_values(
    monkeypatch: pytest.MonkeyPatch, name: str, value: str
) -> None:
    monkeypatch.setenv(name, value)

    with pytest.raises(ConfigurationError, match=name):
        get_discovery_config()


def test_database_config_prefers_environment(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    monkeypatch.setenv("DATABASE_URI", "sqlite+pysqlite:///:memory:")
    assert get_database_config().uri == "sqlite+pysqlite:///:memory:"

    monkeypatch.delenv("DATABASE_URI")
    storage = StorageConfig(data_dir=tmp_path / "data")
    assert get_database_config(storage=storage).uri == (
        f"sqlite+pysqlite:///{tmp_path.resolve() / 'data' / 'documents.db'}"
    )


def test_storage_config_locates_data_dir(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.delenv("DRIVERVERIFY_DATA_DIR", raising=False)
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "xdg"))
    assert get_storage_config().data_dir == tmp_path / "xdg" / "driververify"

    monkeypatch.setenv("DRIVERVERIFY_DATA_DIR", str(tmp_path / "custom"))
    storage = get_storage_config()

    assert storage.http_cache_path() == tmp_path.resolve() / "custom" / "listing_cache.db"
    assert (tmp_path / "custom").is_dir()
