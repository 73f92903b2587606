from __future__ import annotations

from datetime import datetime, timedelta, timezone
import logging

import pytest
import requests

from conftest import FakeSession, make_response
from tpgclient.api.tpg_base import (
    APIError,
    DecodeError,
    TPGError,
    TPGHTTPClient,
    TransportError,
    UnknownResponseError,
)
from tpgclient.config.models import TPGSettings
from tpgclient.schemas.core import DisruptionsResponse


ENVELOPE = {"timestamp": "2018-12-14T08:34:36+0100", "errorCode": 404, "errorMessage": "Stop not found"}


def _client(session: FakeSession, **kwargs) -> TPGHTTPClient:  # type: ignore[no-untyped-def]
    return TPGHTTPClient(api_key="secret", session=session, **kwargs)  # type: ignore[arg-type]


def test_fetch_sends_user_agent_timeout_and_decodes(fake_session: FakeSession) -> None:
    fake_session.queue(make_response(200, {"timestamp": "2018-12-14T08:34:36+0100", "disruptions": []}))
    client = _client(fake_session, timeout_s=5.0)

    resp = client.fetch("/GetDisruptions", {}, DisruptionsResponse.from_dict)

    assert resp.disruptions == ()
    assert resp.timestamp == datetime(2018, 12, 14, 7, 34, 36, tzinfo=timezone.utc)
    call = fake_session.calls[0]
    assert call["url"] == "https://prod.ivtr-od.tpg.ch/v1/GetDisruptions.json?key=secret"
    assert call["headers"]["User-Agent"] == "tpgclient/1.0.0"
    assert call["timeout"] == 5.0


def test_default_timeout_is_thirty_seconds(fake_session: FakeSession) -> None:
    fake_session.queue(make_response(200, {"disruptions": []}))
    _client(fake_session).fetch("/GetDisruptions", {}, DisruptionsResponse.from_dict)
    assert fake_session.calls[0]["timeout"] == 30.0


def test_from_settings_uses_configured_values(fake_session: FakeSession) -> None:
    settings = TPGSettings(api_key="k", timeout_s=2.5, user_agent="my-app/2")
    fake_session.queue(make_response(200, {"disruptions": []}))
    client = TPGHTTPClient.from_settings(settings, session=fake_session)  # type: ignore[arg-type]
    client.fetch("/GetDisruptions", {}, DisruptionsResponse.from_dict)
    call = fake_session.calls[0]
    assert call["url"].endswith("?key=k")
    assert call["timeout"] == 2.5
    assert call["headers"]["User-Agent"] == "my-app/2"


def test_transport_failure_is_wrapped_and_not_retried(fake_session: FakeSession) -> None:
    cause = requests.exceptions.ConnectTimeout("timed out")
    fake_session.queue(cause)

    with pytest.raises(TransportError) as excinfo:
        _client(fake_session).fetch("/GetDisruptions", {}, DisruptionsResponse.from_dict)

    assert excinfo.value.cause is cause
    assert excinfo.value.__cause__ is cause
    assert len(fake_session.calls) == 1


def test_malformed_200_body_raises_decode_error(fake_session: FakeSession) -> None:
    fake_session.queue(make_response(200, text="<html>oops</html>"))

    with pytest.raises(DecodeError) as excinfo:
        _client(fake_session).fetch("/GetDisruptions", {}, DisruptionsResponse.from_dict)

    assert excinfo.value.body == "<html>oops</html>"
    assert isinstance(excinfo.value.cause, ValueError)


def test_unexpected_200_shape_raises_decode_error(fake_session: FakeSession) -> None:
    fake_session.queue(make_response(200, {"disruptions": "none"}))

    with pytest.raises(DecodeError) as excinfo:
        _client(fake_session).fetch("/GetDisruptions", {}, DisruptionsResponse.from_dict)

    assert isinstance(excinfo.value.cause, TypeError)


def test_404_with_envelope_raises_api_error(fake_session: FakeSession) -> None:
    fake_session.queue(make_response(404, ENVELOPE))

    with pytest.raises(APIError) as excinfo:
        _client(fake_session).fetch("/GetStops", {"stopCode": "NOPE"}, DisruptionsResponse.from_dict)

    err = excinfo.value
    assert err.status_code == 404
    assert err.error_code == 404
    assert err.error_message == "Stop not found"
    assert err.timestamp == datetime(2018, 12, 14, 8, 34, 36, tzinfo=timezone(timedelta(hours=1)))
    assert "Stop not found" in str(err)


@pytest.mark.parametrize("status", [400, 403, 410, 503])
def test_other_known_statuses_surface_envelope(fake_session: FakeSession, status: int) -> None:
    fake_session.queue(make_response(status, {**ENVELOPE, "errorCode": status, "errorMessage": "nope"}))

    with pytest.raises(APIError) as excinfo:
        _client(fake_session).fetch("/GetStops", {}, DisruptionsResponse.from_dict)

    assert excinfo.value.error_code == status
    assert excinfo.value.status_code == status


def test_404_with_unparseable_body_raises_unknown_response(fake_session: FakeSession) -> None:
    fake_session.queue(make_response(404, text="Not Found"))

    with pytest.raises(UnknownResponseError) as excinfo:
        _client(fake_session).fetch("/GetStops", {}, DisruptionsResponse.from_dict)

    assert excinfo.value.status_code == 404
    assert excinfo.value.body == "Not Found"


@pytest.mark.parametrize("message", [0, False, [], {}, 12])
def test_404_with_non_string_error_message_raises_unknown_response(fake_session: FakeSession, message) -> None:  # type: ignore[no-untyped-def]
    fake_session.queue(make_response(404, {**ENVELOPE, "errorMessage": message}))

    with pytest.raises(UnknownResponseError) as excinfo:
        _client(fake_session).fetch("/GetStops", {}, DisruptionsResponse.from_dict)

    assert excinfo.value.status_code == 404


def test_404_with_null_error_message_keeps_envelope(fake_session: FakeSession) -> None:
    fake_session.queue(make_response(404, {**ENVELOPE, "errorMessage": None}))

    with pytest.raises(APIError) as excinfo:
        _client(fake_session).fetch("/GetStops", {}, DisruptionsResponse.from_dict)

    assert excinfo.value.error_message == ""


def test_404_with_json_that_is_not_an_envelope_raises_unknown_response(fake_session: FakeSession) -> None:
    fake_session.queue(make_response(404, {"message": "gone"}))

    with pytest.raises(UnknownResponseError) as excinfo:
        _client(fake_session).fetch("/GetStops", {}, DisruptionsResponse.from_dict)

    assert excinfo.value.status_code == 404


def test_unlisted_status_carries_raw_body(fake_session: FakeSession) -> None:
    fake_session.queue(make_response(500, text="Internal Server Error"))

    with pytest.raises(UnknownResponseError) as excinfo:
        _client(fake_session).fetch("/GetStops", {}, DisruptionsResponse.from_dict)

    assert excinfo.value.status_code == 500
    assert excinfo.value.body == "Internal Server Error"
    assert str(excinfo.value) == "Unknown response 500: Internal Server Error"


def test_unlisted_status_ignores_envelope(fake_session: FakeSession) -> None:
    fake_session.queue(make_response(502, ENVELOPE))

    with pytest.raises(UnknownResponseError):
        _client(fake_session).fetch("/GetStops", {}, DisruptionsResponse.from_dict)


def test_unreadable_error_body_uses_read_failure_message(fake_session: FakeSession) -> None:
    class BrokenBody(requests.Response):
        @property
        def text(self) -> str:  # type: ignore[override]
            raise requests.exceptions.ChunkedEncodingError("connection broken")

    resp = BrokenBody()
    resp.status_code = 500
    fake_session.queue(resp)

    with pytest.raises(UnknownResponseError) as excinfo:
        _client(fake_session).fetch("/GetStops", {}, DisruptionsResponse.from_dict)

    assert excinfo.value.body == "connection broken"


def test_long_bodies_are_truncated_in_message(fake_session: FakeSession) -> None:
    fake_session.queue(make_response(500, text="x" * 2000))

    with pytest.raises(UnknownResponseError) as excinfo:
        _client(fake_session).fetch("/GetStops", {}, DisruptionsResponse.from_dict)

    assert len(excinfo.value.body) == 2000
    assert len(str(excinfo.value)) < 600


def test_all_errors_share_a_base_class() -> None:
    for cls in (TransportError, DecodeError, APIError, UnknownResponseError):
        assert issubclass(cls, TPGError)


def test_debug_log_redacts_api_key(fake_session: FakeSession, caplog) -> None:  # type: ignore[no-untyped-def]
    fake_session.queue(make_response(200, {"disruptions": []}))

    with caplog.at_level(logging.DEBUG, logger="tpgclient.api.tpg_base"):
        _client(fake_session).fetch("/GetStops", {"stopName": "Rive", "key": "leak"}, DisruptionsResponse.from_dict)

    assert "GET /GetStops" in caplog.text
    assert "Rive" in caplog.text
    assert "secret" not in caplog.text
    assert "leak" not in caplog.text


def test_close_leaves_injected_session_open(fake_session: FakeSession) -> None:
    with _client(fake_session):
        pass
    assert fake_session.closed is False


def test_owned_session_mounts_zero_retry_adapter() -> None:
    client = TPGHTTPClient(api_key="k")
    try:
        adapter = client._session.get_adapter("https://prod.ivtr-od.tpg.ch/v1/GetStops.json")
        assert adapter.max_retries.total == 0
    finally:
        client.close()
