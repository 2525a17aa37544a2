"""
Backend Gateway

Forwards normalized tool arguments to the StudyOS backend and classifies
whatever goes wrong on the way there.
"""

import json
import logging
from typing import Any, Dict, Optional

import httpx

from .base import ExecutionError

logger = logging.getLogger(__name__)

MAX_ERROR_BODY_CHARS = 2000


class BackendError(ExecutionError):
    """Base class for collaborator failures."""
    cause = "backend_error"


class BackendUnconfiguredError(BackendError):
    """The backend base URL is unset. No request was attempted."""
    cause = "backend_unconfigured"

    def __init__(self, path: str):
        self.path = path
        super().__init__("STUDYOS_BACKEND_URL is not set", details={"path": path})


class BackendConnectionError(BackendError):
    """The backend could not be reached or dropped the connection."""
    cause = "backend_unreachable"

    def __init__(self, path: str, reason: str):
        self.path = path
        super().__init__(
            f"Backend {path} unreachable: {reason}",
            details={"path": path, "reason": reason},
        )


class BackendRejectedError(BackendError):
    """The backend answered with a non-2xx status."""
    cause = "backend_rejected"

    def __init__(self, path: str, status: int, body: str):
        self.path = path
        self.status = status
        self.body = body
        super().__init__(
            f"Backend {path} failed: {status} {body}".rstrip(),
            details={"path": path, "status": status, "body": body},
        )


def _read_body(response: httpx.Response) -> str:
    try:
        text = response.text
    except (UnicodeDecodeError, LookupError):
        return ""
    return text[:MAX_ERROR_BODY_CHARS]


class BackendGateway:
    """
    Single-shot HTTP client for the StudyOS backend.

    Each call opens its own httpx client, so no connection state is shared
    between concurrent invocations. ``transport`` is handed to httpx as-is
    (tests pass an ``httpx.MockTransport``).
    """

    def __init__(
        self,
        base_url: Optional[str],
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or "").strip()
        self.timeout = timeout
        self.transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.base_url)

    def url_for(self, path: str) -> str:
        return f"{self.base_url.rstrip('/')}/{path.lstrip('/')}"

    async def call(self, path: str, payload: Dict[str, Any]) -> Any:
        """
        POST ``payload`` as JSON to ``<base_url>/<path>``.

        Returns the decoded JSON body, or ``{"ok": True}`` when a successful
        response carries no parseable JSON.
        """
        if not self.configured:
            raise BackendUnconfiguredError(path)

        url = self.url_for(path)
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(url, json=payload)
        except httpx.TransportError as e:
            logger.warning(f"Backend {path} unreachable: {e!r}")
            raise BackendConnectionError(path, str(e) or type(e).__name__) from e

        if not response.is_success:
            body = _read_body(response)
            logger.warning(f"Backend {path} returned {response.status_code}")
            raise BackendRejectedError(path, response.status_code, body)

        try:
            return response.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            logger.debug(f"Backend {path} returned a non-JSON body; acknowledging")
            return {"ok": True}
