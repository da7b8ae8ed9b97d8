from __future__ import annotations

import json

import pytest
import requests
from requests.auth import HTTPBasicAuth, HTTPDigestAuth

from lhserver.core.config.models import DeviceApiConfig
from lhserver.core.credentials.manager import CredentialManager
from lhserver.core.device_api.client import DeviceApiClient, parse_device_info, parse_scalar
from lhserver.core.errors import AuthError, BadStatusError, NotInitializedError, ParseError, TransportError

from .helpers.fakes import FakeBroker, FakeClock, FakeResponse, device_info_body


def test_parse_scalar_takes_first_token():
    assert parse_scalar("46.7\n") == 46.7
    assert parse_scalar("  -12.5 C extra") == -12.5


@pytest.mark.parametrize("body", ["", "   ", None, "warm", "nan", "inf"])
def test_parse_scalar_rejects_bad_bodies(body):
    with pytest.raises(ParseError):
        parse_scalar(body)


def test_fetch_temperature_sends_authenticated_query(client, session):
    session.push(FakeResponse(200, "46.7"))
    assert client.fetch_temperature() == 46.7
    call = session.calls[0]
    assert call["method"] == "GET"
    assert call["url"] == "http://127.0.0.1/axis-cgi/temperaturecontrol.cgi"
    assert call["params"]["temperatureunit"] == "celsius"
    assert call["timeout"] == 5.0
    assert call["stream"] is True
    assert isinstance(call["auth"], HTTPDigestAuth)


def test_basic_auth_is_configurable(credentials, session):
    c = DeviceApiClient(cfg=DeviceApiConfig(auth_scheme="basic"), credentials=credentials, session=session)
    session.push(FakeResponse(200, "20"))
    c.fetch_temperature()
    assert isinstance(session.calls[0]["auth"], HTTPBasicAuth)


def test_out_of_range_reading_warns_but_is_returned(client, session, event_log):
    session.push(FakeResponse(200, "150.0"))
    assert client.fetch_temperature() == 150.0
    assert any("out of range" in e.message for e in event_log.export())


def test_negative_reading_is_valid(client, session, event_log):
    session.push(FakeResponse(200, "-20.0"))
    assert client.fetch_temperature() == -20.0
    assert not any("out of range" in e.message for e in event_log.export())


def test_non_200_is_bad_status(client, session):
    session.push(FakeResponse(500, "oops"))
    with pytest.raises(BadStatusError) as ei:
        client.fetch_temperature()
    assert ei.value.status_code == 500


def test_timeout_is_transport_error(client, session):
    session.push(requests.Timeout("slow"))
    with pytest.raises(TransportError):
        client.fetch_temperature()


def test_connection_error_is_transport_error(client, session):
    session.push(requests.ConnectionError("refused"))
    with pytest.raises(TransportError):
        client.fetch_temperature()


def test_uninitialized_credentials_fail_before_network(session):
    cm = CredentialManager(FakeBroker())
    c = DeviceApiClient(cfg=DeviceApiConfig(), credentials=cm, session=session)
    with pytest.raises(NotInitializedError):
        c.fetch_temperature()
    assert session.calls == []


def test_401_reacquires_once_and_retries(credentials, broker, session):
    c = DeviceApiClient(cfg=DeviceApiConfig(), credentials=credentials, session=session)
    session.push(FakeResponse(401, ""))
    session.push(FakeResponse(200, "30.5"))
    assert c.fetch_temperature() == 30.5
    assert broker.calls == 2
    assert len(session.calls) == 2


def test_repeated_401_becomes_bad_status(credentials, session):
    c = DeviceApiClient(cfg=DeviceApiConfig(), credentials=credentials, session=session)
    session.push(FakeResponse(401, ""))
    session.push(FakeResponse(401, ""))
    with pytest.raises(BadStatusError) as ei:
        c.fetch_temperature()
    assert ei.value.status_code == 401


def test_401_with_failing_broker_is_auth_error(credentials, broker, session):
    c = DeviceApiClient(cfg=DeviceApiConfig(), credentials=credentials, session=session)
    broker.fail = True
    session.push(FakeResponse(401, ""))
    with pytest.raises(AuthError):
        c.fetch_temperature()
    assert not credentials.is_initialized()


def test_401_without_reacquire_is_bad_status(credentials, broker, session):
    c = DeviceApiClient(cfg=DeviceApiConfig(reacquire_on_auth_failure=False), credentials=credentials, session=session)
    session.push(FakeResponse(401, ""))
    with pytest.raises(BadStatusError):
        c.fetch_temperature()
    assert broker.calls == 1


def test_fetch_device_info_posts_get_all_properties(client, session):
    session.push(FakeResponse(200, device_info_body()))
    info = client.fetch_device_info()
    assert info.serial_number == "ACCC8E123456"
    assert info.firmware_version == "11.8.64"
    assert info.model == "Q6135-LE"
    call = session.calls[0]
    assert call["method"] == "POST"
    assert call["json"]["method"] == "getAllProperties"


def test_partial_properties_default_to_empty():
    body = json.dumps({"data": {"propertyList": {"SerialNumber": "S1"}}})
    info = parse_device_info(body)
    assert info.serial_number == "S1"
    assert info.model == ""
    assert info.soc == ""


def test_long_fields_are_truncated():
    info = parse_device_info(device_info_body(ProdNbr="M" * 200))
    assert len(info.model) == 64


@pytest.mark.parametrize("body", ["", "{not json", "[]", json.dumps({"data": {}}), json.dumps({"nodata": 1})])
def test_malformed_device_info_is_parse_error(body):
    with pytest.raises(ParseError):
        parse_device_info(body)


def test_application_error_is_bad_status():
    body = json.dumps({"apiVersion": "1.0", "error": {"code": 2002, "message": "method not supported"}})
    with pytest.raises(BadStatusError) as ei:
        parse_device_info(body)
    assert ei.value.status_code == 2002


def test_close_closes_session(client, session):
    client.close()
    assert session.closed


def test_slow_body_past_deadline_is_transport_error(credentials, session, event_log):
    clock = FakeClock()
    c = DeviceApiClient(
        cfg=DeviceApiConfig(timeout_seconds=2.0),
        credentials=credentials,
        session=session,
        event_log=event_log,
        monotonic=clock,
    )
    # one byte per second, well under the per-read socket timeout
    resp = FakeResponse(200, "46.70000", on_chunk=lambda: clock.advance(1.0))
    session.push(resp)
    with pytest.raises(TransportError):
        c.fetch_temperature()
    assert resp.closed
    assert any("deadline" in e.message for e in event_log.export())


def test_body_within_deadline_is_read(credentials, session):
    clock = FakeClock()
    c = DeviceApiClient(cfg=DeviceApiConfig(timeout_seconds=2.0), credentials=credentials, session=session, monotonic=clock)
    resp = FakeResponse(200, "46.7", on_chunk=lambda: clock.advance(0.1))
    session.push(resp)
    assert c.fetch_temperature() == 46.7
    assert resp.closed


def test_non_200_response_is_closed(client, session):
    resp = FakeResponse(503, "busy")
    session.push(resp)
    with pytest.raises(BadStatusError):
        client.fetch_temperature()
    assert resp.closed


def test_error_while_reading_body_is_transport_error(client, session):
    class BrokenBody(FakeResponse):
        def iter_content(self, chunk_size=1, decode_unicode=False):
            yield b"4"
            raise requests.exceptions.ChunkedEncodingError("connection reset")

    resp = BrokenBody(200, "46.7")
    session.push(resp)
    with pytest.raises(TransportError):
        client.fetch_temperature()
    assert resp.closed


def test_fetch_after_clear_and_failed_reacquire_is_auth_error(credentials, broker, session):
    c = DeviceApiClient(cfg=DeviceApiConfig(), credentials=credentials, session=session)
    session.push(FakeResponse(200, "30.0"))
    session.push(FakeResponse(200, device_info_body()))
    assert c.fetch_scalar() == 30.0
    assert c.fetch_structured().serial_number == "ACCC8E123456"

    credentials.clear()
    broker.fail = True
    with pytest.raises(AuthError):
        credentials.acquire()

    sent = len(session.calls)
    with pytest.raises(AuthError):
        c.fetch_scalar()
    with pytest.raises(AuthError):
        c.fetch_structured()
    assert len(session.calls) == sent
