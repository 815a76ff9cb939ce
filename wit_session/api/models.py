"""Request kinds, session states, and result variants.

WHY: Which credential a request uses and how its body is sent depend on
the endpoint. Modelling the endpoints as a closed enum, each member
carrying its own auth and content policy, keeps that dispatch in one
place and lets tests iterate over every kind. Likewise the three ways a
request can end (parsed payload, server/transport failure, local parse
failure) are separate result types instead of one overloaded status.

HOW: Plain enums and frozen dataclasses. RequestKind.from_path() maps
the first path segment ("speech", "entities", ...) to a kind.

RULES:
- Privileged kinds (entities, app, apps) use the server token
- SPEECH is the only kind with a streamed POST body
- TransportFailure codes are all below 100 so they never look like HTTP statuses
- LOCAL_PROCESSING_ERROR (-1) is the status reported for LocalFailure
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Union

LOCAL_PROCESSING_ERROR = -1
"""Status code reported when a success response could not be read or parsed."""


@dataclass(frozen=True)
class QueryParam:
    """Key/value pair sent in the request URI query string."""

    key: str
    value: str


class AuthPolicy(str, enum.Enum):
    """Which credential goes in the Authorization header."""

    SERVER_TOKEN = "server_token"
    CLIENT_TOKEN = "client_token"


class ContentPolicy(str, enum.Enum):
    """How the request body is sent.

    RULES:
    - DEFAULT: GET, no body
    - AUDIO_STREAM: POST, chunked body written while the connection is open
    """

    DEFAULT = "default"
    AUDIO_STREAM = "audio_stream"

    @property
    def method(self) -> str:
        return "POST" if self is ContentPolicy.AUDIO_STREAM else "GET"


class RequestKind(enum.Enum):
    """Closed set of endpoint kinds, each with its auth and content policy.

    WHY: The first path segment decides the credential and transfer mode.
    An enum makes the set exhaustive, so adding a kind forces a decision
    about both policies.

    HOW: Each member's value is (command, auth_policy, content_policy).
    GENERIC covers every command without special handling.
    """

    ENTITIES = ("entities", AuthPolicy.SERVER_TOKEN, ContentPolicy.DEFAULT)
    APP = ("app", AuthPolicy.SERVER_TOKEN, ContentPolicy.DEFAULT)
    APPS = ("apps", AuthPolicy.SERVER_TOKEN, ContentPolicy.DEFAULT)
    SPEECH = ("speech", AuthPolicy.CLIENT_TOKEN, ContentPolicy.AUDIO_STREAM)
    MESSAGE = ("message", AuthPolicy.CLIENT_TOKEN, ContentPolicy.DEFAULT)
    GENERIC = ("", AuthPolicy.CLIENT_TOKEN, ContentPolicy.DEFAULT)

    def __init__(self, command: str, auth_policy: AuthPolicy, content_policy: ContentPolicy) -> None:
        self.command = command
        self.auth_policy = auth_policy
        self.content_policy = content_policy

    @property
    def is_privileged(self) -> bool:
        return self.auth_policy is AuthPolicy.SERVER_TOKEN

    @property
    def is_streaming(self) -> bool:
        return self.content_policy is ContentPolicy.AUDIO_STREAM

    @classmethod
    def from_path(cls, path: str) -> RequestKind:
        """Resolve the kind from the first segment of a resource path.

        RULES:
        - "entities/color" → ENTITIES, "speech" → SPEECH
        - A leading slash is ignored
        - Unknown or empty commands → GENERIC
        """
        command = path.lstrip("/").split("/", 1)[0]
        for kind in cls:
            if kind.command and kind.command == command:
                return kind
        return cls.GENERIC


class SessionState(str, enum.Enum):
    """Lifecycle states of a RequestSession.

    RULES:
    - idle → starting → (writing_body)? → awaiting_response → completed
    - writing_body only occurs for streaming kinds
    - completed is terminal
    """

    IDLE = "idle"
    STARTING = "starting"
    WRITING_BODY = "writing_body"
    AWAITING_RESPONSE = "awaiting_response"
    COMPLETED = "completed"


class TransportFailure(enum.IntEnum):
    """Status codes reported when no HTTP response was received."""

    NAME_RESOLUTION_FAILURE = 1
    CONNECT_FAILURE = 2
    RECEIVE_FAILURE = 3
    SEND_FAILURE = 4
    PROTOCOL_ERROR = 7
    SECURE_CHANNEL_FAILURE = 10
    TIMEOUT = 14
    UNKNOWN_ERROR = 16


# ---------------------------------------------------------------------------
# Result variants
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Success:
    """The server answered with a success status and a valid JSON body."""

    status_code: int
    description: str
    payload: Any


@dataclass(frozen=True)
class ProtocolFailure:
    """The server answered with an error status, or the transport failed.

    RULES:
    - status_code is the HTTP status, or a TransportFailure code when no
      response arrived
    - description is the reason phrase or the transport error message
    """

    status_code: int
    description: str


@dataclass(frozen=True)
class LocalFailure:
    """The server said OK but the body could not be read or parsed."""

    description: str

    @property
    def status_code(self) -> int:
        return LOCAL_PROCESSING_ERROR


SessionResult = Union[Success, ProtocolFailure, LocalFailure]
