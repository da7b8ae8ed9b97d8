from __future__ import annotations

import json
import math
import time
from typing import Any, Callable, Dict, Optional, Tuple

import requests
from requests.auth import AuthBase, HTTPBasicAuth, HTTPDigestAuth

from lhserver.core.config.models import DeviceApiConfig, EndpointConfig
from lhserver.core.credentials.manager import CredentialManager
from lhserver.core.device_api.models import DeviceInfo
from lhserver.core.errors import BadStatusError, ParseError, TransportError


# single-byte reads so a slow sender cannot hold one read call past the deadline
_READ_CHUNK = 1


class DeviceApiClient:
    """
    Authenticated, timeout-bounded client for the local device API.

    Every call validates transport, then HTTP status, then application status
    before parsing. All failures surface as FetchError/AuthError subclasses.
    timeout_seconds is a wall-clock deadline per attempt covering connect,
    headers and body; requests' own timeout only bounds each socket operation.
    """

    def __init__(
        self,
        *,
        cfg: DeviceApiConfig,
        credentials: CredentialManager,
        session: Optional[requests.Session] = None,
        logger=None,
        event_log=None,
        monotonic: Callable[[], float] = time.monotonic,
    ):
        self.cfg = cfg
        self.credentials = credentials
        self.session = session or requests.Session()
        self.logger = logger
        self.event_log = event_log
        self._monotonic = monotonic

    def _url(self, path: str) -> str:
        return f"{self.cfg.base_url.rstrip('/')}{path}"

    # -------- public API --------
    def fetch_scalar(self, endpoint: Optional[EndpointConfig] = None) -> float:
        ep = endpoint or self.cfg.temperature
        value = parse_scalar(self._request(ep))
        if value < self.cfg.sanity_min or value > self.cfg.sanity_max:
            self._warn(f"Device API: reading out of range: {value:.2f} ({ep.path})")
        return value

    def fetch_structured(self, endpoint: Optional[EndpointConfig] = None) -> DeviceInfo:
        ep = endpoint or self.cfg.device_info
        return parse_device_info(self._request(ep))

    def fetch_temperature(self) -> float:
        return self.fetch_scalar(self.cfg.temperature)

    def fetch_device_info(self) -> DeviceInfo:
        return self.fetch_structured(self.cfg.device_info)

    def close(self) -> None:
        try:
            self.session.close()
        except Exception:  # noqa: BLE001
            pass

    # -------- internals --------
    def _auth(self) -> AuthBase:
        # raises NotInitializedError when credentials were never acquired or were cleared
        user, secret = self.credentials.auth_parts()
        if self.cfg.auth_scheme == "basic":
            return HTTPBasicAuth(user, secret)
        return HTTPDigestAuth(user, secret)

    def _send(self, ep: EndpointConfig) -> Tuple[int, str]:
        deadline = self._monotonic() + float(self.cfg.timeout_seconds)
        kwargs: Dict[str, Any] = {
            "auth": self._auth(),
            "timeout": float(self.cfg.timeout_seconds),
            "stream": True,
        }
        if ep.params:
            kwargs["params"] = dict(ep.params)
        if ep.json_body is not None:
            kwargs["json"] = ep.json_body
        try:
            resp = self.session.request(ep.method, self._url(ep.path), **kwargs)
        except requests.Timeout as e:
            self._warn(f"Device API: request timed out ({ep.path})")
            raise TransportError("Device API request timed out.", path=ep.path) from e
        except requests.RequestException as e:
            self._warn(f"Device API: request failed ({ep.path}): {type(e).__name__}")
            raise TransportError(path=ep.path, error=type(e).__name__) from e
        try:
            if resp.status_code != 200:
                return resp.status_code, ""
            return resp.status_code, self._read_body(resp, deadline, ep)
        finally:
            resp.close()

    def _read_body(self, resp: requests.Response, deadline: float, ep: EndpointConfig) -> str:
        buf = bytearray()
        try:
            if self._monotonic() > deadline:
                raise self._deadline_error(ep)
            for chunk in resp.iter_content(chunk_size=_READ_CHUNK):
                buf.extend(chunk)
                if self._monotonic() > deadline:
                    raise self._deadline_error(ep)
        except requests.Timeout as e:
            self._warn(f"Device API: request timed out ({ep.path})")
            raise TransportError("Device API request timed out.", path=ep.path) from e
        except requests.RequestException as e:
            self._warn(f"Device API: response read failed ({ep.path}): {type(e).__name__}")
            raise TransportError(path=ep.path, error=type(e).__name__) from e
        return bytes(buf).decode(resp.encoding or "utf-8", errors="replace")

    def _deadline_error(self, ep: EndpointConfig) -> TransportError:
        self._warn(f"Device API: response exceeded {self.cfg.timeout_seconds}s deadline ({ep.path})")
        return TransportError("Device API response exceeded the deadline.", path=ep.path)

    def _request(self, ep: EndpointConfig) -> str:
        status, body = self._send(ep)
        if status == 401 and self.cfg.reacquire_on_auth_failure:
            self._warn(f"Device API: authentication rejected ({ep.path}); re-acquiring credentials")
            # AuthError from the broker propagates as-is
            self.credentials.acquire()
            status, body = self._send(ep)
        if status != 200:
            self._warn(f"Device API: {ep.path} returned HTTP {status}")
            raise BadStatusError(status, path=ep.path)
        return body

    def _warn(self, msg: str) -> None:
        if self.logger:
            self.logger.warning(msg)
        if self.event_log is not None:
            self.event_log.warning(msg)


def parse_scalar(body: Optional[str]) -> float:
    text = str(body or "").strip()
    if not text:
        raise ParseError("Empty response body.")
    token = text.split()[0]
    try:
        value = float(token)
    except ValueError as e:
        raise ParseError("Response is not a number.", token=token[:32]) from e
    if not math.isfinite(value):
        raise ParseError("Response is not a finite number.", token=token[:32])
    return value


def parse_device_info(body: Optional[str]) -> DeviceInfo:
    try:
        root = json.loads(body or "")
    except json.JSONDecodeError as e:
        raise ParseError("Device info is not valid JSON.") from e
    if not isinstance(root, dict):
        raise ParseError("Device info must be a JSON object.")
    err = root.get("error")
    if isinstance(err, dict):
        raise BadStatusError(err.get("code", "api_error"), f"Device API error: {str(err.get('message') or '')[:120]}")
    data = root.get("data")
    if not isinstance(data, dict):
        raise ParseError("Device info missing 'data'.")
    props = data.get("propertyList")
    if not isinstance(props, dict):
        raise ParseError("Device info missing 'propertyList'.")
    return DeviceInfo.from_properties(props)
