"""Tests for request kinds, policies, and result variants.

WHY: The kind table decides which credential is sent where. A kind with
the wrong auth policy would leak the server token to runtime endpoints
or send the client token to privileged ones.
"""

from __future__ import annotations

import pytest

from wit_session.api.models import (
    LOCAL_PROCESSING_ERROR,
    AuthPolicy,
    ContentPolicy,
    LocalFailure,
    ProtocolFailure,
    RequestKind,
    Success,
    TransportFailure,
)


class TestRequestKind:
    """Tests for RequestKind resolution and policies."""

    @pytest.mark.parametrize(
        "path, kind",
        [
            ("speech", RequestKind.SPEECH),
            ("message", RequestKind.MESSAGE),
            ("entities", RequestKind.ENTITIES),
            ("entities/color", RequestKind.ENTITIES),
            ("/apps/123", RequestKind.APPS),
            ("app", RequestKind.APP),
            ("language", RequestKind.GENERIC),
            ("", RequestKind.GENERIC),
            ("speechless", RequestKind.GENERIC),
        ],
    )
    def test_from_path(self, path, kind):
        assert RequestKind.from_path(path) is kind

    def test_privileged_kinds(self):
        privileged = {kind for kind in RequestKind if kind.is_privileged}
        assert privileged == {RequestKind.ENTITIES, RequestKind.APP, RequestKind.APPS}
        for kind in privileged:
            assert kind.auth_policy is AuthPolicy.SERVER_TOKEN

    def test_only_speech_streams(self):
        streaming = [kind for kind in RequestKind if kind.is_streaming]
        assert streaming == [RequestKind.SPEECH]

    def test_every_kind_has_both_policies(self):
        for kind in RequestKind:
            assert isinstance(kind.auth_policy, AuthPolicy)
            assert isinstance(kind.content_policy, ContentPolicy)

    def test_content_policy_methods(self):
        assert ContentPolicy.AUDIO_STREAM.method == "POST"
        assert ContentPolicy.DEFAULT.method == "GET"


class TestResults:
    """Tests for the result variants and status codes."""

    def test_transport_codes_never_look_like_http(self):
        for code in TransportFailure:
            assert 0 < code < 100

    def test_local_failure_uses_sentinel(self):
        failure = LocalFailure("Expecting value: line 1 column 1 (char 0)")
        assert failure.status_code == LOCAL_PROCESSING_ERROR == -1

    def test_variants_are_distinguishable(self):
        results = [
            Success(200, "OK", {"intent": "greet"}),
            ProtocolFailure(500, "Server Error"),
            LocalFailure("bad json"),
        ]
        assert [type(r).__name__ for r in results] == ["Success", "ProtocolFailure", "LocalFailure"]
        assert len({r.status_code for r in results}) == 3

    def test_results_are_immutable(self):
        result = Success(200, "OK", {})
        with pytest.raises(AttributeError):
            result.status_code = 500
