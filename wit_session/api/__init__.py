"""Wit.ai API package — request lifecycle, endpoint kinds, and results.

WHY: Voice and text features need to send requests to Wit.ai, stream
microphone audio into speech requests, and get a single completion
callback with the parsed JSON. This package keeps all HTTP details
behind RequestSession.

HOW: Uses httpx.AsyncClient on a worker thread per session. Endpoint
kinds and outcomes are typed in models.py; factory.py builds sessions
for the common endpoints.

RULES:
- All HTTP calls go through RequestSession (no direct httpx usage elsewhere)
- Authentication is via Bearer token from WitConfiguration
"""

from wit_session.api.factory import (
    app_request,
    apps_request,
    entities_request,
    entity_request,
    message_request,
    speech_request,
)
from wit_session.api.models import (
    LOCAL_PROCESSING_ERROR,
    AuthPolicy,
    ContentPolicy,
    LocalFailure,
    ProtocolFailure,
    QueryParam,
    RequestKind,
    SessionState,
    Success,
    TransportFailure,
)
from wit_session.api.session import (
    ConfigurationError,
    RequestSession,
    RequestStreamClosedError,
    ServerTokenUnavailableError,
    SessionStateError,
    WitSessionError,
    build_uri,
)

__all__ = [
    "LOCAL_PROCESSING_ERROR",
    "AuthPolicy",
    "ConfigurationError",
    "ContentPolicy",
    "LocalFailure",
    "ProtocolFailure",
    "QueryParam",
    "RequestKind",
    "RequestSession",
    "RequestStreamClosedError",
    "ServerTokenUnavailableError",
    "SessionState",
    "SessionStateError",
    "Success",
    "TransportFailure",
    "WitSessionError",
    "app_request",
    "apps_request",
    "build_uri",
    "entities_request",
    "entity_request",
    "message_request",
    "speech_request",
]
