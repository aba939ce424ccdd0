"""Async HTTP client that delivers normalized messages to the downstream API.

Every call is a single ``POST {base_url}/api/{resource}`` with a JSON body and
a shared-secret header.  There is no retry: a failed attempt is reported to
the caller and the next event decides what happens next.

When the base URL or the secret is not configured the client does nothing
and reports a skipped result, so the relay stays usable without a
downstream API.

Usage::

    from relay.forwarding.client import ForwardClient

    async with ForwardClient(base_url="https://example.com", secret="s") as client:
        result = await client.forward(payload.to_dict())
        if not result.ok:
            print(result.error)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import aiohttp

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

DEFAULT_RESOURCE: str = "discord"
DEFAULT_SECRET_HEADER: str = "x-bot-secret"
_DEFAULT_TIMEOUT: float = 15.0
_BODY_PREVIEW: int = 500


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ForwardError(Exception):
    """Base exception for failed deliveries."""


class RemoteRejected(ForwardError):
    """The downstream API answered with a non-2xx status.

    Attributes:
        status: HTTP status code.
        body: Response text, or ``None`` if it could not be read.
    """

    def __init__(self, status: int, body: str | None = None) -> None:
        self.status = status
        self.body = body
        detail = f": {body[:_BODY_PREVIEW]}" if body else ""
        super().__init__(f"Downstream API returned HTTP {status}{detail}")


class TransportFailure(ForwardError):
    """The request never produced a response.

    Attributes:
        cause: Description of the underlying network error.
    """

    def __init__(self, cause: str) -> None:
        self.cause = cause
        super().__init__(f"Could not reach downstream API: {cause}")


# ---------------------------------------------------------------------------
# Result
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ForwardResult:
    """Outcome of one :meth:`ForwardClient.forward` call.

    Attributes:
        delivered: The API accepted the request.
        skipped: Forwarding is not configured; nothing was sent.
        status: HTTP status, when a response was received.
        error: The failure, when neither delivered nor skipped.
    """

    delivered: bool = False
    skipped: bool = False
    status: int | None = None
    error: ForwardError | None = None

    @property
    def ok(self) -> bool:
        """Success, including the skipped no-op case."""
        return self.error is None


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------


class ForwardClient:
    """POSTs JSON bodies to the downstream API.

    The HTTP session is created lazily on first send so that construction
    needs no running event loop.

    Args:
        base_url: Root URL of the downstream API.  ``None`` or empty
            disables forwarding.
        secret: Shared secret sent in *secret_header*.  ``None`` or empty
            disables forwarding.
        resource: Path segment after ``/api/``.
        secret_header: Header name carrying the secret.
        timeout: Total per-request timeout in seconds.
        session: Optional pre-built session (tests, connection sharing).  A
            session passed in is not closed by :meth:`close`.
    """

    def __init__(
        self,
        base_url: str | None,
        secret: str | None,
        *,
        resource: str = DEFAULT_RESOURCE,
        secret_header: str = DEFAULT_SECRET_HEADER,
        timeout: float = _DEFAULT_TIMEOUT,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self._base_url = (base_url or "").rstrip("/")
        self._secret = secret or ""
        self._resource = resource.strip("/")
        self._secret_header = secret_header
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._session = session
        self._owns_session = session is None

    # -- Async context manager ----------------------------------------------

    async def __aenter__(self) -> ForwardClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        await self.close()

    # -- Properties ---------------------------------------------------------

    @property
    def is_configured(self) -> bool:
        return bool(self._base_url and self._secret)

    @property
    def url(self) -> str:
        return f"{self._base_url}/api/{self._resource}"

    # -- Internal helpers ---------------------------------------------------

    def _get_headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            self._secret_header: self._secret,
        }

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
            self._owns_session = True
        return self._session

    async def _post(self, body: dict[str, Any]) -> int:
        """Send *body* once and return the response status.

        Raises:
            RemoteRejected: On a non-2xx response.
            TransportFailure: On any connection or timeout error.
        """
        session = self._get_session()
        try:
            async with session.post(self.url, json=body, headers=self._get_headers()) as resp:
                status = resp.status
                if 200 <= status < 300:
                    return status
                # The status already arrived; a failed body read keeps it.
                try:
                    text: str | None = await resp.text()
                except (aiohttp.ClientError, OSError, TimeoutError, UnicodeDecodeError) as exc:
                    logger.debug("Could not read error response body: %r", exc)
                    text = None
                raise RemoteRejected(status, text)
        except ForwardError:
            raise
        except (aiohttp.ClientError, OSError, TimeoutError) as exc:
            raise TransportFailure(str(exc) or type(exc).__name__) from exc

    # -- Public API ---------------------------------------------------------

    async def forward(self, body: dict[str, Any]) -> ForwardResult:
        """Deliver one JSON body.

        Never raises for delivery problems; the outcome is described by the
        returned :class:`ForwardResult` and logged.
        """
        if not self.is_configured:
            logger.warning("NEXT_API_URL or DISCORD_POST_SECRET not set, skipping POST")
            return ForwardResult(skipped=True)

        logger.debug("Posting to %s", self.url)
        try:
            status = await self._post(body)
        except RemoteRejected as exc:
            logger.error(
                "Downstream API returned error: %d %s", exc.status, exc.body or "",
            )
            return ForwardResult(status=exc.status, error=exc)
        except TransportFailure as exc:
            logger.error("Failed to POST to downstream API: %s", exc.cause)
            return ForwardResult(error=exc)

        logger.info("Posted to downstream API (status %d)", status)
        return ForwardResult(delivered=True, status=status)

    async def close(self) -> None:
        """Close the HTTP session if this client created it.  Safe to repeat."""
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None
