"""Client — thin async HTTP client for the Daisy REST API.

Wraps ``httpx.AsyncClient`` with the conventions the backend expects:
- GET requests carry ``data`` as a URL query string
- every other method carries ``data`` as a JSON body
- responses are normalised into a ``ClientResponse`` envelope
- any non-2xx status raises ``NetworkError`` carrying status and body

No retries and no timeout beyond the transport's own.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional
from urllib.parse import urlencode

import httpx
import structlog
from web3 import Web3

from daisy_sdk.config.settings import settings
from daisy_sdk.core.errors import NetworkError

logger = structlog.get_logger("daisy_sdk.data.rest_client")

CONTENT_TYPE = "Content-Type"
ACCEPT = "Accept"


def _default_headers() -> dict[str, str]:
    return {
        ACCEPT: "application/json",
        CONTENT_TYPE: "application/json",
    }


@dataclass
class ClientConfig:
    """Configuration for the HTTP client."""

    # REST base URL; a trailing slash is stripped
    base_url: str = field(default_factory=lambda: settings.DAISY_BASE_URL)

    # Sent with every request, per-call headers win on conflict
    headers: dict[str, str] = field(default_factory=_default_headers)

    # Transport timeout in seconds
    timeout_s: float = field(default_factory=lambda: settings.HTTP_TIMEOUT_SECONDS)

    # Optional HTTP basic auth (username, password)
    auth: Optional[tuple[str, str]] = field(default=None, repr=False)

    def merged(self, override: ClientConfig | Mapping[str, Any] | None) -> ClientConfig:
        """Return a copy with *override* applied (a mapping sets only its keys)."""
        values = {**vars(self), "headers": dict(self.headers)}
        if override is not None:
            values.update(vars(override) if isinstance(override, ClientConfig) else dict(override))
        return ClientConfig(**values)


@dataclass(frozen=True)
class ClientResponse:
    """Normalised response envelope."""

    data: Any
    status: int
    status_text: str
    headers: httpx.Headers
    config: dict[str, Any]


class Client:
    """Base HTTP client.

    Parameters
    ----------
    config:
        ``ClientConfig``; defaults come from ``settings``.
    transport:
        Optional httpx transport (``httpx.MockTransport`` in tests).

    Usage::

        async with Client(ClientConfig(base_url="https://sdk.daisypayments.com")) as client:
            response = await client.request("post", "/user/12345", data={"firstName": "Fred"})
            print(response.status, response.data)
    """

    def __init__(
        self,
        config: ClientConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = (config or ClientConfig()).merged(None)
        self.config.base_url = self.config.base_url.rstrip("/")
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create the underlying httpx client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.config.timeout_s),
                auth=self.config.auth,
                transport=self._transport,
            )
        return self._client

    # ── Public API ───────────────────────────────────────────────

    async def request(
        self,
        method: str = "get",
        url: str = "/",
        headers: Mapping[str, str] | None = None,
        data: Mapping[str, Any] | None = None,
    ) -> ClientResponse:
        """Send a request and return the normalised response.

        Raises
        ------
        NetworkError
            Status outside 2xx (``status_code`` and ``body`` set) or a
            transport failure (``status_code`` is None).
        """
        method = method.lower()
        is_get = method == "get"
        query = urlencode(data or {}, doseq=True) if is_get else ""
        full_url = f"{self.config.base_url}{url}?{query}"
        merged_headers = {**self.config.headers, **(headers or {})}
        # web3 values (HexBytes, AttributeDict receipts) encode as hex strings and dicts
        body = Web3.to_json(dict(data)) if not is_get and data is not None else None

        config = {
            "method": method,
            "url": full_url,
            "headers": merged_headers,
            "body": body,
        }

        try:
            response = await self._get_client().request(
                method.upper(),
                full_url,
                headers=merged_headers,
                content=body,
            )
        except httpx.HTTPError as exc:
            logger.warning("http_client.transport_error", method=method, url=url, error=str(exc))
            raise NetworkError(f"Fetch error: {exc}", url=full_url) from exc

        if not response.is_success:
            payload = _parse_body(response, strict=False)
            logger.warning(
                "http_client.bad_status",
                method=method,
                url=url,
                status=response.status_code,
            )
            raise NetworkError(
                f"Fetch error: {response.status_code} {response.reason_phrase}",
                status_code=response.status_code,
                status_text=response.reason_phrase,
                body=payload,
                url=full_url,
            )

        logger.debug("http_client.request", method=method, url=url, status=response.status_code)
        return ClientResponse(
            data=_parse_body(response),
            status=response.status_code,
            status_text=response.reason_phrase,
            headers=response.headers,
            config=config,
        )

    # ── Lifecycle ────────────────────────────────────────────────

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
        self._client = None

    async def __aenter__(self) -> Client:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.aclose()


def _parse_body(response: httpx.Response, strict: bool = True) -> Any:
    """Decode *response* as text for ``text/html``, JSON otherwise.

    With ``strict=False`` an undecodable body falls back to its text, which is
    what error envelopes need.
    """
    content_type = response.headers.get(CONTENT_TYPE, "").split(";")[0].strip()
    if content_type == "text/html":
        return response.text
    if not strict and not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        if strict:
            raise NetworkError(
                "Fetch error: response body is not valid JSON",
                status_code=response.status_code,
                status_text=response.reason_phrase,
                body=response.text,
                url=str(response.request.url),
            ) from None
        return response.text
