"""Tests for response envelope decoding and status classification."""

from __future__ import annotations

import json
from typing import Any

import pytest

from api7_cloud.envelope import (
    ResponseEnvelope,
    Status,
    build_envelope,
    decode_response,
    json_payload_decoder,
)
from api7_cloud.errors import CloudAPIError, CloudDecodeError, CloudServerError


def _identity(payload: Any) -> Any:
    return payload


def _wire(envelope: dict[str, Any]) -> bytes:
    return json.dumps(envelope).encode()


class TestResponseEnvelope:
    """Tests for parsing the wire wrapper."""

    def test_parse_full_envelope(self) -> None:
        """All four fields are read."""
        raw = _wire(
            {
                "payload": {"id": "1"},
                "status": {"code": 0, "message": "OK"},
                "error": "",
                "warning": "deprecated field",
            }
        )
        envelope = ResponseEnvelope.from_json(raw)

        assert envelope.payload == {"id": "1"}
        assert envelope.status == Status(code=0, message="OK")
        assert envelope.warning == "deprecated field"

    def test_missing_fields_take_defaults(self) -> None:
        """An empty object is a valid envelope without payload."""
        envelope = ResponseEnvelope.from_json(b"{}")

        assert envelope.payload is None
        assert envelope.status == Status()
        assert envelope.error is None

    def test_non_object_is_decode_error(self) -> None:
        """A JSON array is not an envelope."""
        with pytest.raises(CloudDecodeError, match="decode response body"):
            ResponseEnvelope.from_json(b"[1, 2]")


class TestBuildEnvelope:
    """Tests for building the wire wrapper."""

    def test_payload_omitted_when_none(self) -> None:
        envelope = build_envelope()
        assert "payload" not in envelope
        assert envelope["status"] == {"code": 0, "message": "OK"}

    def test_error_and_warning(self) -> None:
        envelope = build_envelope(code=4, message="not found", error="no such app")
        assert envelope["status"]["code"] == 4
        assert envelope["error"] == "no such app"
        assert "warning" not in envelope


class TestDecodeResponse:
    """Tests for status classification."""

    @pytest.mark.parametrize(
        "payload",
        [
            {"id": "123", "name": "first app", "protocols": ["HTTP", "HTTPS"]},
            [1, 2, 3],
            "text",
            0,
            {"nested": {"list": [{"a": None}]}},
        ],
    )
    def test_payload_round_trip(self, payload: Any) -> None:
        """A 200 envelope yields its payload unchanged."""
        body = _wire(build_envelope(payload))
        assert decode_response(200, body, _identity) == payload

    def test_no_decoder_returns_none(self) -> None:
        """Operations without a result ignore the payload."""
        body = _wire(build_envelope({"id": "1"}))
        assert decode_response(200, body) is None

    def test_404_is_api_error(self) -> None:
        """A 4xx envelope becomes CloudAPIError with its status fields."""
        body = _wire({"status": {"code": 4, "message": "not found"}})

        with pytest.raises(CloudAPIError) as exc_info:
            decode_response(404, body, _identity)

        err = exc_info.value
        assert err.status == 404
        assert err.code == 4
        assert err.message == "not found"
        assert "not found" in str(err)

    def test_api_error_even_with_payload(self) -> None:
        """Status wins over a present payload."""
        body = _wire(build_envelope({"id": "1"}, code=3, message="bad", error="x"))

        with pytest.raises(CloudAPIError) as exc_info:
            decode_response(400, body, _identity)
        assert exc_info.value.reason == "x"

    def test_503_plain_text_is_server_error(self) -> None:
        """5xx bodies are not parsed."""
        with pytest.raises(CloudServerError) as exc_info:
            decode_response(503, b"upstream unavailable", _identity)

        assert exc_info.value.status == 503
        assert exc_info.value.body == "upstream unavailable"
        assert "upstream unavailable" in str(exc_info.value)

    def test_200_unparsable_body_is_decode_error(self) -> None:
        with pytest.raises(CloudDecodeError) as exc_info:
            decode_response(200, b"<html>", _identity)
        assert exc_info.value.step == "decode response body"

    def test_unparsable_error_body_is_decode_error(self) -> None:
        """A 4xx without an envelope cannot be classified further."""
        with pytest.raises(CloudDecodeError):
            decode_response(404, b"404 page not found")

    def test_decoder_failure_is_decode_error(self) -> None:
        """Decoder exceptions are wrapped with the payload step."""

        def _decoder(payload: Any) -> str:
            return payload["missing"]

        body = _wire(build_envelope({"id": "1"}))
        with pytest.raises(CloudDecodeError) as exc_info:
            decode_response(200, body, _decoder)

        assert exc_info.value.step == "decode payload to json"
        assert isinstance(exc_info.value.__cause__, KeyError)


class TestJsonPayloadDecoder:
    """Tests for adapting mapping factories."""

    def test_factory_receives_mapping(self) -> None:
        decoder = json_payload_decoder(lambda data: data["name"])
        assert decoder({"name": "app"}) == "app"

    def test_non_mapping_rejected(self) -> None:
        decoder = json_payload_decoder(dict)
        body = _wire(build_envelope([1]))

        with pytest.raises(CloudDecodeError):
            decode_response(200, body, decoder)
