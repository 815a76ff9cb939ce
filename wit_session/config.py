"""Configuration constants, audio format, and .env loading.

WHY: Every request needs the same host, API version, and credentials.
Keeping them in one module makes them easy to find, update, and
override without touching the request lifecycle code.

HOW: python-dotenv loads the .env file on import. Constants are plain
module-level values read from the environment with sensible defaults.
WitConfiguration holds the two credentials a session may use.

RULES:
- The Accept header is pinned to WIT_API_VERSION
- The audio content type is derived from the audio constants, never typed by hand
- Tokens are loaded from .env or the environment, never hardcoded
- A missing client token is an error, never a placeholder value
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

from dotenv import load_dotenv

# Load .env from the project root (where the script is run from)
load_dotenv()

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# API configuration defaults
# ---------------------------------------------------------------------------

WIT_API_SCHEME = "https"
WIT_API_HOST = os.getenv("WIT_API_HOST", "api.wit.ai")
WIT_API_VERSION = os.getenv("WIT_API_VERSION", "20200513")
WIT_ACCEPT_HEADER = "application/vnd.wit.{}+json".format(WIT_API_VERSION)

WIT_REQUEST_TIMEOUT_S = float(os.getenv("WIT_REQUEST_TIMEOUT_S", "30"))
WIT_CONNECT_TIMEOUT_S = 10.0

# ---------------------------------------------------------------------------
# Audio format of streamed speech requests
# ---------------------------------------------------------------------------

AUDIO_ENCODING = "signed-integer"
AUDIO_BITS = 16
AUDIO_SAMPLE_RATE = 16000
AUDIO_ENDIAN = "little"

AUDIO_CONTENT_TYPE = "audio/raw;encoding={};bits={};rate={};endian={}".format(
    AUDIO_ENCODING, AUDIO_BITS, AUDIO_SAMPLE_RATE, AUDIO_ENDIAN,
)
"""Content type sent with speech requests (s16le PCM, 16 kHz)."""

CLIENT_TOKEN_LENGTH = 32


@dataclass(frozen=True)
class WitConfiguration:
    """Credentials shared by every request to one Wit app.

    WHY: Most endpoints accept the per-client token, but the
    introspection endpoints (entities, app, apps) need the server token,
    which is only available in a developer context.

    HOW: A frozen dataclass. Sessions read it and never mutate it.

    RULES:
    - client_access_token is always required
    - server_access_token is None when not available in this context
    """

    client_access_token: str
    server_access_token: str | None = None

    @property
    def is_client_token_valid(self) -> bool:
        token = (self.client_access_token or "").strip()
        return len(token) == CLIENT_TOKEN_LENGTH

    @property
    def has_server_token(self) -> bool:
        return bool((self.server_access_token or "").strip())

    @classmethod
    def from_env(cls) -> WitConfiguration:
        """Build a configuration from the environment.

        WHY: The CLI and scripts should not need tokens on the command
        line, where they end up in shell history.

        HOW: Reads WIT_CLIENT_ACCESS_TOKEN and WIT_SERVER_ACCESS_TOKEN
        from os.environ (populated by python-dotenv).

        RULES:
        - Raises ValueError if the client token is missing or empty
        - A blank server token becomes None
        - A client token of the wrong length is logged as a warning, not rejected
        """
        client_token = os.getenv("WIT_CLIENT_ACCESS_TOKEN", "").strip()
        if not client_token:
            raise ValueError(
                "Wit client access token not configured. "
                "Add WIT_CLIENT_ACCESS_TOKEN to the .env file in the app folder."
            )
        server_token = os.getenv("WIT_SERVER_ACCESS_TOKEN", "").strip()
        config = cls(
            client_access_token=client_token,
            server_access_token=server_token or None,
        )
        if not config.is_client_token_valid:
            logger.warning(
                "WIT_CLIENT_ACCESS_TOKEN is %d characters long; Wit client tokens are %d.",
                len(client_token), CLIENT_TOKEN_LENGTH,
            )
        return config
