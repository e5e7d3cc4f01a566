"""Schema registry REST client."""

import asyncio
import logging
from typing import Any
from urllib.parse import quote

import aiohttp
from pydantic import ValidationError

from avrodesk.registry.models import SchemaVersion
from config.config import SchemaRegistryConfig
from core.errors.exceptions import RegistryError
from core.types import ErrorCategory

logger = logging.getLogger(__name__)

REGISTRY_CONTENT_TYPE = "application/vnd.schemaregistry.v1+json"

# (label, category) per status code
_STATUS_MAP: dict[int, tuple[str, ErrorCategory]] = {
    401: ("Unauthorized", ErrorCategory.AUTH),
    403: ("Forbidden", ErrorCategory.PERMANENT),
    404: ("Not found", ErrorCategory.PERMANENT),
    429: ("Rate limited", ErrorCategory.TRANSIENT),
    500: ("Server error", ErrorCategory.TRANSIENT),
    502: ("Server error", ErrorCategory.TRANSIENT),
    503: ("Server error", ErrorCategory.TRANSIENT),
    504: ("Server error", ErrorCategory.TRANSIENT),
}


def classify_registry_error(status: int, url: str, body: str = "") -> RegistryError:
    """Classify HTTP status codes into registry errors with a category."""
    entry = _STATUS_MAP.get(status)
    if entry:
        label, category = entry
    elif 400 <= status < 500:
        # Fallback: remaining 4xx are permanent, everything else is transient
        label, category = "Client error", ErrorCategory.PERMANENT
    else:
        label, category = "HTTP error", ErrorCategory.TRANSIENT

    message = f"{label} ({status}): {url}"
    if body:
        message = f"{message}: {body}"
    return RegistryError(message, status_code=status, category=category)


class SchemaRegistryClient:
    """Async client for the schema registry subjects API."""

    def __init__(self, config: SchemaRegistryConfig):
        self.base_url = config.url.rstrip("/") if config.url else ""

        if not self.base_url:
            raise ValueError("SchemaRegistryClient requires a registry url")

        if not self.base_url.startswith(("http://", "https://")):
            raise ValueError(
                f"SchemaRegistryClient url must start with http:// or https://, got: {self.base_url!r}"
            )

        credentials = config.credentials()
        self._auth = aiohttp.BasicAuth(*credentials) if credentials else None
        self.timeout_seconds = config.timeout_seconds

        self._session: aiohttp.ClientSession | None = None
        self._closed = False

        logger.info(
            "SchemaRegistryClient initialized",
            extra={
                "http_url": self.base_url,
                "timeout_seconds": self.timeout_seconds,
            },
        )

    async def __aenter__(self) -> "SchemaRegistryClient":
        await self._ensure_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def _ensure_session(self) -> None:
        if self._closed:
            raise RuntimeError("SchemaRegistryClient is closed, cannot create new session")
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                auth=self._auth,
                headers={"Accept": REGISTRY_CONTENT_TYPE},
            )

    async def close(self) -> None:
        self._closed = True
        if self._session and not self._session.closed:
            await self._session.close()
            await asyncio.sleep(0)
        self._session = None

    async def _handle_error_response(self, response, url: str, endpoint: str) -> None:
        """Read error body, classify error, and raise."""
        try:
            response_body = await response.text()
        except aiohttp.ClientError:
            response_body = "<unable to read response body>"
        response_body = response_body.strip()
        if len(response_body) > 500:
            response_body = response_body[:500] + "..."

        error = classify_registry_error(response.status, url, response_body)
        logger.warning(
            "Registry request failed",
            extra={
                "api_endpoint": endpoint,
                "http_url": url,
                "http_status": response.status,
                "error_category": error.category.value,
            },
        )
        raise error

    async def _request(self, endpoint: str) -> Any:
        await self._ensure_session()

        url = f"{self.base_url}/{endpoint.lstrip('/')}"
        logger.debug("Registry request starting", extra={"api_endpoint": endpoint, "http_url": url})

        loop = asyncio.get_running_loop()
        start_time = loop.time()
        try:
            if self._session is None:
                raise RuntimeError("HTTP session not initialized - call _ensure_session() first")
            async with self._session.request(
                "GET",
                url,
                timeout=aiohttp.ClientTimeout(total=self.timeout_seconds),
            ) as response:
                if response.status != 200:
                    await self._handle_error_response(response, url, endpoint)

                data = await response.json(content_type=None)
                logger.debug(
                    "Registry request succeeded",
                    extra={
                        "api_endpoint": endpoint,
                        "http_status": response.status,
                        "duration_ms": (loop.time() - start_time) * 1000,
                    },
                )
                return data

        except TimeoutError as e:
            error = RegistryError(
                f"Timeout after {self.timeout_seconds}s: {url}",
                category=ErrorCategory.TRANSIENT,
                cause=e,
            )
            logger.warning(
                "Registry request timeout",
                extra={"api_endpoint": endpoint, "http_url": url, "timeout_seconds": self.timeout_seconds},
            )
            raise error from e

        except aiohttp.ClientError as e:
            error = RegistryError(
                f"Connection error: {e}",
                category=ErrorCategory.TRANSIENT,
                cause=e,
            )
            logger.error(
                "Registry connection error",
                exc_info=True,
                extra={"api_endpoint": endpoint, "http_url": url},
            )
            raise error from e

    async def list_subjects(self) -> list[str]:
        """All subject names, sorted."""
        data = await self._request("/subjects")
        if not isinstance(data, list) or not all(isinstance(s, str) for s in data):
            raise RegistryError(
                "Unexpected /subjects response: expected a list of names",
                category=ErrorCategory.PERMANENT,
            )
        return sorted(data)

    async def get_latest_schema(self, subject: str) -> SchemaVersion:
        """Latest registered version of a subject."""
        data = await self._request(f"/subjects/{quote(subject, safe='')}/versions/latest")
        try:
            return SchemaVersion.model_validate(data)
        except ValidationError as e:
            raise RegistryError(
                f"Unexpected schema response for {subject!r}",
                category=ErrorCategory.PERMANENT,
                cause=e,
            ) from e
