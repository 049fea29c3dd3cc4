"""
Unit tests for service configuration.
"""

import pytest

from shared.config import ServiceConfig, get_config
from shared.errors import ConfigurationError


class TestServiceConfig:
    """Test cases for ServiceConfig."""

    @pytest.fixture(autouse=True)
    def clean_env(self, monkeypatch, tmp_path):
        # keep a developer's .env or exported settings out of the assertions
        monkeypatch.chdir(tmp_path)
        for name in ("AUTHZ_ENV", "AUTHZ_JWKS_URL", "AUTHZ_ISSUER", "AUTHZ_AUDIENCE",
                     "AUTHZ_DEV_BYPASS", "AUTHZ_JWKS_CACHE_TTL", "AUTHZ_SUBJECT_CLAIM"):
            monkeypatch.delenv(name, raising=False)

    def test_defaults(self):
        config = ServiceConfig()

        assert config.env == "local"
        assert config.port == 8181
        assert config.jwks_cache_ttl == 3600.0
        assert config.jwks_fetch_attempts == 3
        assert config.subject_claim == "fedid"
        assert config.dev_bypass is False
        assert config.dev_token == "ANY_TOKEN"

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("AUTHZ_JWKS_URL", "https://keycloak.test/certs")
        monkeypatch.setenv("AUTHZ_JWKS_CACHE_TTL", "600")
        monkeypatch.setenv("AUTHZ_SUBJECT_CLAIM", "preferred_username")

        config = get_config()

        assert config.jwks_url == "https://keycloak.test/certs"
        assert config.jwks_cache_ttl == 600.0
        assert config.subject_claim == "preferred_username"

    def test_env_file(self, tmp_path):
        (tmp_path / ".env").write_text("AUTHZ_ISSUER=https://from-file.test\n")

        assert ServiceConfig().issuer == "https://from-file.test"

    def test_validate_required_lists_missing(self):
        with pytest.raises(ConfigurationError) as exc_info:
            ServiceConfig(issuer="https://issuer.test").validate_required()

        assert exc_info.value.details["missing"] == ["AUTHZ_JWKS_URL", "AUTHZ_AUDIENCE"]

    def test_validate_required_passes(self):
        config = ServiceConfig(jwks_url="https://k.test/certs", issuer="https://k.test", audience="sessions")

        assert config.validate_required() is config

    def test_dev_bypass_outside_local(self):
        config = ServiceConfig(
            jwks_url="https://k.test/certs", issuer="https://k.test", audience="sessions",
            env="staging", dev_bypass=True
        )

        with pytest.raises(ConfigurationError):
            config.validate_required()

    def test_dev_bypass_needs_explicit_local_env(self):
        config = ServiceConfig(
            jwks_url="https://k.test/certs", issuer="https://k.test", audience="sessions", dev_bypass=True
        )

        assert config.env == "local"
        with pytest.raises(ConfigurationError):
            config.validate_required()

    def test_dev_bypass_with_local_env_from_environment(self, monkeypatch):
        monkeypatch.setenv("AUTHZ_ENV", "local")
        config = ServiceConfig(
            jwks_url="https://k.test/certs", issuer="https://k.test", audience="sessions", dev_bypass=True
        )

        assert config.validate_required() is config

    @pytest.mark.parametrize("field,value", [
        ("jwks_cache_ttl", 0),
        ("jwks_fetch_timeout", -1),
        ("jwks_fetch_attempts", 0),
        ("jwks_fetch_attempts", 10),
    ])
    def test_out_of_range_values_rejected(self, field, value):
        with pytest.raises(ValueError):
            ServiceConfig(**{field: value})
