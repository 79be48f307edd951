"""Configuration loading, templating and context overrides."""

from pathlib import Path

import pytest

from src.product_service.runtime.config.config_data import (
    ConfigData,
    DatabaseConfig,
    ProductConfig,
)
from src.product_service.runtime.config.config_template import (
    load_templated_yaml,
    substitute_env_vars,
)
from src.product_service.runtime.context import get_config, with_context


class TestSubstituteEnvVars:
    def test_default_used_when_variable_missing(self, monkeypatch):
        """${VAR:-default} falls back to the default."""
        monkeypatch.delenv("PRODUCT_TEST_VAR", raising=False)
        assert substitute_env_vars("x=${PRODUCT_TEST_VAR:-fallback}") == "x=fallback"

    def test_variable_value_wins_over_default(self, monkeypatch):
        monkeypatch.setenv("PRODUCT_TEST_VAR", "real")
        assert substitute_env_vars("${PRODUCT_TEST_VAR:-fallback}") == "real"

    def test_required_variable_missing_raises(self, monkeypatch):
        """${VAR:?message} raises with the message when unset."""
        monkeypatch.delenv("PRODUCT_TEST_VAR", raising=False)
        with pytest.raises(ValueError, match="must be set"):
            substitute_env_vars("${PRODUCT_TEST_VAR:?must be set}")


class TestLoadTemplatedYaml:
    def test_loads_config_section(self, tmp_path: Path, monkeypatch):
        monkeypatch.setenv("PRODUCT_TEST_LIMIT", "7")
        path = tmp_path / "config.yaml"
        path.write_text(
            "config:\n"
            "  product:\n"
            "    default_page_limit: ${PRODUCT_TEST_LIMIT}\n"
            "  search:\n"
            "    index: catalogue\n"
        )

        config = load_templated_yaml(path)

        assert config.product.default_page_limit == 7
        assert config.search.index == "catalogue"
        # Untouched sections keep their defaults
        assert config.product.max_page_limit == 20
        assert config.events.object_deleted_subject == "storage.object.deleted"

    def test_repository_config_file_validates(self, monkeypatch):
        """The shipped config.yaml resolves with its defaults alone."""
        root = Path(__file__).resolve().parents[4]
        config = load_templated_yaml(root / "config.yaml")

        assert isinstance(config, ConfigData)
        assert config.product.thumbnail_object_type == "IMAGE"
        assert config.search.minimum_should_match == "50%"


class TestWithContext:
    def test_override_only_replaces_set_fields(self):
        base = get_config()
        override = ConfigData(product=ProductConfig(max_page_limit=50))

        with with_context(override):
            config = get_config()
            assert config.product.max_page_limit == 50
            assert config.product.default_page_limit == base.product.default_page_limit
            assert config.search.index == base.search.index

        assert get_config().product.max_page_limit == base.product.max_page_limit

    def test_none_override_is_noop(self):
        before = get_config()
        with with_context(None):
            assert get_config() is before

    def test_rejects_non_config_override(self):
        with pytest.raises(ValueError):
            with with_context({"product": {}}):  # type: ignore[arg-type]
                pass


class TestDatabaseConfig:
    def test_sqlite_connection_string_is_url(self):
        config = DatabaseConfig(url="sqlite:///./products.db")
        assert config.is_sqlite
        assert config.password is None
        assert config.connection_string == "sqlite:///./products.db"

    def test_development_password_comes_from_url(self):
        config = DatabaseConfig(
            url="postgresql://product:secret@db:5432/product_db",
            environment_mode="development",
        )
        assert config.password == "secret"
        assert "product:secret@db:5432/product_db" in config.connection_string

    def test_production_password_from_env_var(self, monkeypatch):
        monkeypatch.setenv("PRODUCT_DB_PASSWORD", "from-env")
        config = DatabaseConfig(
            url="postgresql://product@db:5432/product_db",
            environment_mode="production",
            password_env_var="PRODUCT_DB_PASSWORD",
        )
        assert config.password == "from-env"

    def test_production_without_password_source_raises(self):
        config = DatabaseConfig(
            url="postgresql://product@db:5432/product_db",
            environment_mode="production",
        )
        with pytest.raises(ValueError):
            _ = config.password
