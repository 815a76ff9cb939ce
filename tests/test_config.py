"""Tests for configuration constants and WitConfiguration.

WHY: A wrong content type or Accept header makes the server reject every
request, and a placeholder token would hide a missing credential.
"""

from __future__ import annotations

import logging

import pytest

from conftest import CLIENT_TOKEN, SERVER_TOKEN
from wit_session.config import (
    AUDIO_CONTENT_TYPE,
    WIT_ACCEPT_HEADER,
    WIT_API_VERSION,
    WitConfiguration,
)


class TestConstants:
    def test_audio_content_type(self):
        assert AUDIO_CONTENT_TYPE == (
            "audio/raw;encoding=signed-integer;bits=16;rate=16000;endian=little"
        )

    def test_accept_header_pins_api_version(self):
        assert WIT_ACCEPT_HEADER == "application/vnd.wit.{}+json".format(WIT_API_VERSION)


class TestWitConfiguration:
    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("WIT_CLIENT_ACCESS_TOKEN", " {} ".format(CLIENT_TOKEN))
        monkeypatch.setenv("WIT_SERVER_ACCESS_TOKEN", SERVER_TOKEN)
        config = WitConfiguration.from_env()
        assert config.client_access_token == CLIENT_TOKEN
        assert config.server_access_token == SERVER_TOKEN
        assert config.has_server_token

    def test_from_env_without_server_token(self, monkeypatch):
        monkeypatch.setenv("WIT_CLIENT_ACCESS_TOKEN", CLIENT_TOKEN)
        monkeypatch.setenv("WIT_SERVER_ACCESS_TOKEN", "  ")
        config = WitConfiguration.from_env()
        assert config.server_access_token is None
        assert not config.has_server_token

    def test_from_env_requires_client_token(self, monkeypatch):
        monkeypatch.delenv("WIT_CLIENT_ACCESS_TOKEN", raising=False)
        with pytest.raises(ValueError, match="WIT_CLIENT_ACCESS_TOKEN"):
            WitConfiguration.from_env()

    @pytest.mark.parametrize(
        "token, valid",
        [(CLIENT_TOKEN, True), ("short", False), ("", False), (" {} ".format(CLIENT_TOKEN), True)],
    )
    def test_client_token_validity(self, token, valid):
        assert WitConfiguration(client_access_token=token).is_client_token_valid is valid

    def test_from_env_warns_on_wrong_length_client_token(self, monkeypatch, caplog):
        monkeypatch.setenv("WIT_CLIENT_ACCESS_TOKEN", "short")
        monkeypatch.delenv("WIT_SERVER_ACCESS_TOKEN", raising=False)
        with caplog.at_level(logging.WARNING, logger="wit_session.config"):
            config = WitConfiguration.from_env()
        assert config.client_access_token == "short"
        assert "5 characters" in caplog.text

    def test_from_env_valid_token_does_not_warn(self, monkeypatch, caplog):
        monkeypatch.setenv("WIT_CLIENT_ACCESS_TOKEN", CLIENT_TOKEN)
        with caplog.at_level(logging.WARNING, logger="wit_session.config"):
            WitConfiguration.from_env()
        assert caplog.records == []
