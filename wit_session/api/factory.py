"""Helpers that build ready-to-start sessions for common endpoints.

WHY: Application code should ask for "a message request for this text"
rather than remember resource paths and query parameter names.

HOW: Each helper builds the path and QueryParams and returns an unstarted
RequestSession. Extra keyword arguments (transport, host, timeout) are
passed through to the session.

RULES:
- Helpers never call start()
- Optional parameters are only sent when given
"""

from __future__ import annotations

from typing import Optional

from wit_session.api.models import QueryParam
from wit_session.api.session import RequestSession
from wit_session.config import WitConfiguration


def message_request(
    config: WitConfiguration,
    text: str,
    n: Optional[int] = None,
    **session_kwargs,
) -> RequestSession:
    """Classify a text utterance (GET /message?q=...)."""
    params = [QueryParam("q", text)]
    if n is not None:
        params.append(QueryParam("n", str(n)))
    return RequestSession(config, "message", *params, **session_kwargs)


def speech_request(config: WitConfiguration, **session_kwargs) -> RequestSession:
    """Classify streamed audio (POST /speech, chunked raw PCM body)."""
    return RequestSession(config, "speech", **session_kwargs)


def entities_request(config: WitConfiguration, **session_kwargs) -> RequestSession:
    """List the app's entities. Needs the server token."""
    return RequestSession(config, "entities", **session_kwargs)


def entity_request(config: WitConfiguration, name: str, **session_kwargs) -> RequestSession:
    """Describe one entity. Needs the server token."""
    return RequestSession(config, "entities/{}".format(name), **session_kwargs)


def apps_request(
    config: WitConfiguration,
    limit: int,
    offset: int = 0,
    **session_kwargs,
) -> RequestSession:
    """List the apps owned by the server token's user."""
    return RequestSession(
        config,
        "apps",
        QueryParam("limit", str(limit)),
        QueryParam("offset", str(offset)),
        **session_kwargs,
    )


def app_request(config: WitConfiguration, app_id: str, **session_kwargs) -> RequestSession:
    """Describe one app. Needs the server token."""
    return RequestSession(config, "apps/{}".format(app_id), **session_kwargs)
