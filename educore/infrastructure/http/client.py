"""Async HTTP transport for the school-administration API.

All calls go through httpx.AsyncClient so they never block the event loop.
The client injects the bearer token from its AuthSession, classifies every
failure into the transport error taxonomy, and retries network errors and
5xx responses according to its RetryPolicy. Callers only ever observe a
terminal outcome.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable, Callable, Mapping, Sequence
from typing import IO, Any

import httpx

from educore.core.config import Settings, get_settings
from educore.core.constants import (
    DEFAULT_HEADERS,
    HTTP_FORBIDDEN,
    HTTP_NO_CONTENT,
    HTTP_NOT_FOUND,
    HTTP_SERVER_ERROR_MIN,
    HTTP_UNAUTHORIZED,
    HTTP_UNPROCESSABLE_ENTITY,
    UPLOAD_CHUNK_SIZE,
    UPLOAD_FIELD_NAME,
)
from educore.infrastructure.exceptions import (
    AuthError,
    ClientError,
    NetworkError,
    NotFoundError,
    RequestSetupError,
    ServerError,
    TransportError,
    ValidationError,
)
from educore.infrastructure.http.retry import RetryPolicy
from educore.infrastructure.http.session import AuthSession
from educore.shared.enums import RequestState
from educore.shared.telemetry.tracing import add_span_attributes, traced

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int], None]
SleepFn = Callable[[float], Awaitable[None]]
FileContent = bytes | IO[bytes]


def _safe_json(response: httpx.Response) -> Any:
    """Return the decoded JSON body, the text body if not JSON, or None if empty."""
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


def _field_errors(body: Any) -> dict[str, list[str]]:
    """Extract {field: [messages]} from an error envelope."""
    if not isinstance(body, dict) or not isinstance(body.get("errors"), dict):
        return {}
    errors: dict[str, list[str]] = {}
    for field, messages in body["errors"].items():
        if isinstance(messages, str):
            errors[str(field)] = [messages]
        else:
            errors[str(field)] = [str(m) for m in messages]
    return errors


def _envelope_message(body: Any) -> str | None:
    if isinstance(body, dict):
        return body.get("message") or body.get("error")
    return None


def classify_response(response: httpx.Response, endpoint: str) -> TransportError | None:
    """Map an HTTP response to a transport error, or None for 1xx-3xx.

    Args:
        response: Received response.
        endpoint: Endpoint path, recorded on NotFoundError.

    Returns:
        The classified error for 4xx/5xx responses, else None.
    """
    status = response.status_code
    if status < 400:
        return None
    body = _safe_json(response)
    if status in (HTTP_UNAUTHORIZED, HTTP_FORBIDDEN):
        return AuthError(status, response_body=body)
    if status == HTTP_NOT_FOUND:
        return NotFoundError(endpoint, response_body=body)
    if status == HTTP_UNPROCESSABLE_ENTITY:
        return ValidationError(
            _field_errors(body), message=_envelope_message(body), response_body=body
        )
    if status >= HTTP_SERVER_ERROR_MIN:
        return ServerError(status, response_body=body)
    return ClientError(status, _envelope_message(body), response_body=body)


def _with_upload_progress(
    request: httpx.Request, on_progress: ProgressCallback
) -> httpx.Request:
    """Return a copy of request whose body is streamed in chunks, reporting percent sent."""
    body = request.read()
    total = len(body)

    async def chunks() -> AsyncIterator[bytes]:
        if total == 0:
            on_progress(100)
            return
        sent = 0
        for start in range(0, total, UPLOAD_CHUNK_SIZE):
            chunk = body[start : start + UPLOAD_CHUNK_SIZE]
            yield chunk
            sent += len(chunk)
            on_progress(round(sent * 100 / total))

    headers = request.headers.copy()
    headers["Content-Length"] = str(total)
    return httpx.Request(
        request.method,
        request.url,
        headers=headers,
        content=chunks(),
        extensions=request.extensions,
    )


class TransportClient:
    """Authenticated, retrying HTTP client bound to one API base URL.

    Token state lives in the injected AuthSession; construct one client per
    signed-in session and share it between resource services.
    """

    def __init__(
        self,
        session: AuthSession | None = None,
        *,
        settings: Settings | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        retry_policy: RetryPolicy | None = None,
        http_client: httpx.AsyncClient | None = None,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        """Initialize the client.

        Args:
            session: Token holder; a fresh signed-out session when omitted.
            settings: Client settings; get_settings() when omitted.
            base_url: Overrides settings.api_base_url.
            timeout: Per-call timeout in seconds; overrides settings.
            retry_policy: Overrides the policy derived from settings.
            http_client: Injected httpx client (not closed by aclose()).
            sleep: Awaitable used between retries (injected in tests).
        """
        self.settings = settings or get_settings()
        self.session = session or AuthSession()
        self.base_url = (base_url or self.settings.api_base_url).rstrip("/")
        self.timeout = timeout if timeout is not None else self.settings.api_timeout_seconds
        self.retry_policy = retry_policy or RetryPolicy.from_settings(self.settings)
        self._http = (
            http_client
            if http_client is not None
            else httpx.AsyncClient(timeout=self.timeout, headers=DEFAULT_HEADERS)
        )
        self._owns_http = http_client is None
        self._sleep = sleep
        self._log_traffic = self.settings.api_logging_enabled
        if self.settings.telemetry_enabled:
            self._send = traced("educore.transport.attempt")(self._send)

    async def aclose(self) -> None:
        """Close the HTTP client only if we created it (do not close injected client)."""
        if self._owns_http:
            await self._http.aclose()

    async def __aenter__(self) -> TransportClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    # ---- Token management ----

    def set_access_token(self, token: str | None) -> None:
        self.session.set_token(token)

    def get_access_token(self) -> str | None:
        return self.session.access_token

    def clear_access_token(self) -> None:
        self.session.clear()

    # ---- HTTP methods ----

    async def get(
        self, endpoint: str, params: Mapping[str, Any] | None = None, **options: Any
    ) -> Any:
        """GET endpoint; options: raw, timeout, headers, retry_policy."""
        return await self.request("GET", endpoint, params=params, **options)

    async def post(self, endpoint: str, payload: Any = None, **options: Any) -> Any:
        return await self.request("POST", endpoint, json=payload, **options)

    async def put(self, endpoint: str, payload: Any = None, **options: Any) -> Any:
        return await self.request("PUT", endpoint, json=payload, **options)

    async def patch(self, endpoint: str, payload: Any = None, **options: Any) -> Any:
        return await self.request("PATCH", endpoint, json=payload, **options)

    async def delete(
        self, endpoint: str, params: Mapping[str, Any] | None = None, **options: Any
    ) -> Any:
        return await self.request("DELETE", endpoint, params=params, **options)

    # ---- File operations ----

    async def upload_file(
        self,
        endpoint: str,
        file: FileContent,
        *,
        filename: str = "upload",
        content_type: str = "application/octet-stream",
        field_name: str = UPLOAD_FIELD_NAME,
        on_progress: ProgressCallback | None = None,
        data: Mapping[str, str] | None = None,
        **options: Any,
    ) -> Any:
        """Upload a single file as multipart/form-data under field_name."""
        files = [(field_name, (filename, file, content_type))]
        return await self.upload_form_data(
            endpoint, files, data=data, on_progress=on_progress, **options
        )

    async def upload_files(
        self,
        endpoint: str,
        files: Sequence[tuple[str, FileContent, str]],
        *,
        on_progress: ProgressCallback | None = None,
        **options: Any,
    ) -> Any:
        """Upload several (filename, content, content_type) files as files[0], files[1], ..."""
        form = [
            (f"files[{index}]", (filename, content, content_type))
            for index, (filename, content, content_type) in enumerate(files)
        ]
        return await self.upload_form_data(
            endpoint, form, on_progress=on_progress, **options
        )

    async def upload_form_data(
        self,
        endpoint: str,
        files: Sequence[tuple[str, tuple[str, FileContent, str]]],
        *,
        data: Mapping[str, str] | None = None,
        on_progress: ProgressCallback | None = None,
        **options: Any,
    ) -> Any:
        """POST prepared multipart parts; on_progress receives percent sent (0-100)."""
        return await self.request(
            "POST",
            endpoint,
            files=list(files),
            data=dict(data) if data else None,
            on_progress=on_progress,
            **options,
        )

    # ---- Core request loop ----

    def _url(self, endpoint: str) -> str:
        if endpoint.startswith(("http://", "https://")):
            return endpoint
        return f"{self.base_url}/{endpoint.lstrip('/')}"

    async def request(
        self,
        method: str,
        endpoint: str,
        *,
        params: Mapping[str, Any] | None = None,
        json: Any = None,
        files: list[Any] | None = None,
        data: dict[str, str] | None = None,
        raw: bool = False,
        timeout: float | None = None,
        headers: Mapping[str, str] | None = None,
        on_progress: ProgressCallback | None = None,
        retry_policy: RetryPolicy | None = None,
    ) -> Any:
        """Send a request, retrying retry-eligible failures with linear backoff.

        Returns:
            Decoded JSON body (None for empty/204), or bytes when raw=True.

        Raises:
            TransportError: Terminal classified failure.
        """
        policy = retry_policy or self.retry_policy
        delays = policy.delays()
        attempt = 0
        while True:
            attempt += 1
            try:
                response = await self._send(
                    method=method,
                    endpoint=endpoint,
                    attempt=attempt,
                    params=params,
                    json=json,
                    files=files,
                    data=data,
                    timeout=timeout,
                    headers=headers,
                    on_progress=on_progress,
                )
            except TransportError as exc:
                delay = next(delays, None) if policy.should_retry(exc) else None
                if delay is None:
                    logger.debug(
                        "%s %s -> %s after %d attempt(s): %s",
                        method, endpoint, RequestState.TERMINAL_FAILURE.value, attempt, exc.error_code,
                    )
                    raise
                logger.warning(
                    "%s %s -> %s (%s, attempt %d/%d); retrying in %.2fs",
                    method, endpoint, RequestState.RETRYABLE_FAILURE.value, exc.error_code, attempt, policy.max_attempts, delay,
                )
                await self._sleep(delay)
                continue
            if self._log_traffic:
                logger.debug(
                    "%s %s -> %s (attempt %d)",
                    method, endpoint, RequestState.SUCCESS.value, attempt,
                )
            return self._decode(response, raw=raw)

    async def _send(
        self,
        *,
        method: str,
        endpoint: str,
        attempt: int,
        params: Mapping[str, Any] | None,
        json: Any,
        files: list[Any] | None,
        data: dict[str, str] | None,
        timeout: float | None,
        headers: Mapping[str, str] | None,
        on_progress: ProgressCallback | None,
    ) -> httpx.Response:
        """Build and send one attempt; raise the classified error on failure."""
        request_headers = {**self.session.authorization_header(), **(headers or {})}
        try:
            request = self._http.build_request(
                method,
                self._url(endpoint),
                params=params,
                json=json,
                files=files,
                data=data,
                headers=request_headers,
                timeout=timeout if timeout is not None else httpx.USE_CLIENT_DEFAULT,
            )
            if on_progress is not None and files:
                request = _with_upload_progress(request, on_progress)
        except (httpx.InvalidURL, TypeError, ValueError) as e:
            raise RequestSetupError(str(e)) from e

        if self._log_traffic:
            logger.debug(
                "%s %s -> %s (attempt %d)", method, request.url, RequestState.SENT.value, attempt
            )
        try:
            response = await self._http.send(request)
        except httpx.UnsupportedProtocol as e:
            raise RequestSetupError(str(e)) from e
        except httpx.TransportError as e:
            logger.debug("[API Error] %s %s: %s", method, request.url, e)
            raise NetworkError(f"{type(e).__name__}: {e}") from e

        add_span_attributes(**{"http.status_code": response.status_code})
        if self._log_traffic:
            logger.debug(
                "[API Response] %s %s -> %s", method, request.url, response.status_code
            )
        error = classify_response(response, endpoint)
        if error is None:
            return response
        if response.status_code == HTTP_UNAUTHORIZED and self.session.is_authenticated:
            self.session.clear()
            logger.warning("Received 401 from %s; access token cleared", endpoint)
        raise error

    def _decode(self, response: httpx.Response, *, raw: bool) -> Any:
        if raw:
            return response.content
        if response.status_code == HTTP_NO_CONTENT:
            return None
        body = _safe_json(response)
        if isinstance(body, dict) and body.get("success") is False:
            raise ClientError(
                response.status_code, _envelope_message(body), response_body=body
            )
        return body
