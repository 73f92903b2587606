from __future__ import annotations

# `logging` reports each request at DEBUG without leaking the API key.
import logging
# Typing helpers keep the dispatcher generic over the response record it decodes into.
from typing import Any, Callable, Mapping, Optional, TypeVar
# `urlencode` form-encodes the query string exactly like the API expects (`,` -> `%2C`, space -> `+`).
from urllib.parse import urlencode

# `requests` performs HTTP calls; we wrap it to centralize auth (API key), headers, and error mapping.
import requests
# `HTTPAdapter` lets us mount an explicit retry policy onto the session we own.
from requests.adapters import HTTPAdapter
# `Retry(total=0)` documents at-most-once delivery; callers decide whether to retry.
from urllib3.util.retry import Retry

from tpgclient.config.models import DEFAULT_TIMEOUT_S, DEFAULT_USER_AGENT, TPGSettings
from tpgclient.schemas.apitime import parse_api_time, render_api_time


logger = logging.getLogger(__name__)

T = TypeVar("T")

# Fixed API location; every endpoint path is appended to this prefix with a `.json` suffix.
API_SCHEME = "https"
API_HOST = "prod.ivtr-od.tpg.ch"
API_PATH_PREFIX = "/v1"
API_BASE_URL = f"{API_SCHEME}://{API_HOST}{API_PATH_PREFIX}"

# Query parameter carrying the API key on every request.
KEY_PARAMETER = "key"

# Statuses for which the API documents a JSON error envelope.
KNOWN_ERROR_STATUSES = frozenset({400, 403, 404, 410, 503})

# Error messages keep at most this much of a response body.
_BODY_SNIPPET_CHARS = 500


class TPGError(RuntimeError):
    """Base class for failures while talking to the TPG API."""


class TransportError(TPGError):
    """Connection, DNS, or timeout failure; the request may not have reached the server."""

    def __init__(self, message: str, *, cause: BaseException) -> None:
        super().__init__(message)
        self.cause = cause


class DecodeError(TPGError):
    """A 200 response whose body is not the JSON we expected."""

    def __init__(self, message: str, *, body: str, cause: BaseException) -> None:
        super().__init__(message)
        self.body = body
        self.cause = cause


class APIError(TPGError):
    """
    Error envelope reported by the server on a documented error status.

    Fields are kept exactly as the server sent them.
    """

    def __init__(
        self,
        *,
        status_code: int,
        error_code: int,
        error_message: str,
        timestamp: Any = None,
    ) -> None:
        when = render_api_time(timestamp) if timestamp is not None else "unknown time"
        super().__init__(f"tpg API error {error_code} at {when}: {error_message}")
        self.status_code = status_code
        self.error_code = error_code
        self.error_message = error_message
        self.timestamp = timestamp

    @classmethod
    def from_response(cls, status_code: int, data: Any) -> "APIError":
        # Envelope shape: {"timestamp": "...", "errorCode": 404, "errorMessage": "..."}.
        if not isinstance(data, Mapping):
            raise TypeError(f"Expected a JSON object for the error envelope, got {type(data).__name__}")
        error_code = data.get("errorCode")
        if isinstance(error_code, bool) or not isinstance(error_code, int):
            raise TypeError(f"Error envelope has no integer errorCode: {error_code!r}")
        message = data.get("errorMessage")
        if message is None:
            message = ""
        if not isinstance(message, str):
            raise TypeError(f"Error envelope errorMessage is not a string: {message!r}")
        raw_ts = data.get("timestamp")
        return cls(
            status_code=status_code,
            error_code=error_code,
            error_message=message,
            timestamp=parse_api_time(raw_ts) if raw_ts is not None else None,
        )


class UnknownResponseError(TPGError):
    """Any non-200 outcome that is not a well-formed error envelope."""

    def __init__(self, status_code: int, body: str) -> None:
        super().__init__(f"Unknown response {status_code}: {body[:_BODY_SNIPPET_CHARS]}")
        self.status_code = status_code
        self.body = body


def build_api_url(path: str, params: Mapping[str, str], api_key: str) -> str:
    """
    Build the full request URL for an endpoint.

    - `key` is always set to `api_key`, replacing any caller-provided value.
    - Empty values are dropped; that is how optional filters are disabled.
    - Keys are sorted (including `key`) so identical queries give identical URLs.
    """

    query_params = {k: v for k, v in params.items() if v != ""}
    query_params[KEY_PARAMETER] = api_key
    query = urlencode(sorted(query_params.items()))
    return f"{API_BASE_URL}{path}.json?{query}"


def _redact(params: Mapping[str, str]) -> dict[str, str]:
    return {k: v for k, v in params.items() if k != KEY_PARAMETER and v != ""}


def _read_body(resp: requests.Response) -> str:
    # Use the body when it can be read; fall back to the read failure's message otherwise.
    try:
        return resp.text
    except (requests.RequestException, UnicodeDecodeError) as exc:
        return str(exc)


# `TPGHTTPClient` owns the session and turns HTTP outcomes into records or typed errors.
class TPGHTTPClient:
    """
    Low-level TPG client: one synchronous GET per call, no retries, no caching.

    The session may be injected (custom adapters, proxies, test doubles); an injected
    session is not closed by `close()`.
    """

    def __init__(
        self,
        *,
        api_key: str,
        timeout_s: float = DEFAULT_TIMEOUT_S,
        user_agent: str = DEFAULT_USER_AGENT,
        session: Optional[requests.Session] = None,
    ) -> None:
        # The key is injected so tests and scripts never need to read env vars here.
        self._api_key = api_key
        # A single timeout value keeps calls bounded; requests applies it to connect and read.
        self._timeout_s = timeout_s
        # Sent on every request so operators can identify this client in API-side logs.
        self._headers = {"User-Agent": user_agent, "Accept": "application/json"}

        # Only close sessions we created; an injected session belongs to the caller.
        self._owns_session = session is None
        if session is None:
            session = requests.Session()
            # Zero retries: a failed call is reported once and never replayed behind the caller's back.
            retry = Retry(total=0, connect=0, read=0, status=0, raise_on_status=False)
            session.mount("https://", HTTPAdapter(max_retries=retry))
            session.mount("http://", HTTPAdapter(max_retries=retry))
        self._session = session

    @classmethod
    def from_settings(
        cls,
        settings: TPGSettings,
        *,
        session: Optional[requests.Session] = None,
    ) -> "TPGHTTPClient":
        return cls(
            api_key=settings.api_key,
            timeout_s=settings.timeout_s,
            user_agent=settings.user_agent,
            session=session,
        )

    def url_for(self, path: str, params: Mapping[str, str]) -> str:
        return build_api_url(path, params, self._api_key)

    def fetch(self, path: str, params: Mapping[str, str], parse: Callable[[Any], T]) -> T:
        """
        GET `path` with `params` and decode a 200 body with `parse`.

        Raises `TransportError`, `DecodeError`, `APIError` or `UnknownResponseError`.
        """

        # Build the full URL early; only the redacted params ever reach the logs.
        url = self.url_for(path, params)
        logger.debug("GET %s params=%s", path, _redact(params))

        try:
            resp = self._session.get(url, headers=self._headers, timeout=self._timeout_s)
        except requests.RequestException as exc:
            # Connection, DNS, TLS, and timeout failures all land here; nothing is retried.
            raise TransportError(f"TPG request to {path} failed: {exc}", cause=exc) from exc

        logger.debug("GET %s -> %s", path, resp.status_code)

        if resp.status_code == 200:
            return self._decode(path, resp, parse)

        body = _read_body(resp)
        if resp.status_code in KNOWN_ERROR_STATUSES:
            try:
                error = APIError.from_response(resp.status_code, resp.json())
            except (ValueError, TypeError) as exc:
                # Not an envelope (HTML error page, proxy text, ...): report the raw body instead.
                raise UnknownResponseError(resp.status_code, body) from exc
            raise error

        raise UnknownResponseError(resp.status_code, body)

    def _decode(self, path: str, resp: requests.Response, parse: Callable[[Any], T]) -> T:
        try:
            # `resp.json()` raises a `ValueError` subclass on malformed JSON; record parsers raise
            # `ValueError`/`TypeError` on unexpected shapes and bad timestamps.
            return parse(resp.json())
        except (ValueError, TypeError) as exc:
            body = _read_body(resp)
            raise DecodeError(
                f"Could not decode TPG response for {path}: {exc}",
                body=body,
                cause=exc,
            ) from exc

    def close(self) -> None:
        if self._owns_session:
            self._session.close()

    def __enter__(self) -> "TPGHTTPClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
