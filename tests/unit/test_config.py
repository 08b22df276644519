"""Unit tests for ClientConfig."""

from __future__ import annotations

from unium_client.config import ClientConfig


class TestClientConfig:
    """Tests for endpoint configuration."""

    def test_defaults(self) -> None:
        config = ClientConfig()

        assert config.url == "ws://localhost:8342/ws"
        assert config.debug is False

    def test_from_empty_env(self) -> None:
        config = ClientConfig.from_env({})

        assert config.host == "localhost"
        assert config.port == 8342

    def test_from_env_overrides(self) -> None:
        config = ClientConfig.from_env({"IP": "10.0.0.5", "PORT": "9000", "DEBUG": "true"})

        assert config.url == "ws://10.0.0.5:9000/ws"
        assert config.debug is True

    def test_debug_requires_true(self) -> None:
        """Only the literal "true" enables debug logging."""
        assert ClientConfig.from_env({"DEBUG": "1"}).debug is False
        assert ClientConfig.from_env({"DEBUG": "TRUE"}).debug is True

    def test_from_process_env(self, monkeypatch) -> None:
        monkeypatch.setenv("IP", "scene-host")
        monkeypatch.delenv("PORT", raising=False)

        config = ClientConfig.from_env()

        assert config.host == "scene-host"
        assert config.port == 8342
