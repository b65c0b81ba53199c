"""Pulse — Meta Graph API Client.

Thin async wrapper used by the ads cache sync: token injection, retries
with exponential backoff on throttling and transient failures, and cursor
pagination over `paging.next`.
"""

import asyncio
from typing import Any, Dict, List, Optional

import httpx

from app.config import settings
from app.core.logging import get_logger

logger = get_logger("meta.client")

META_BASE = f"{settings.meta_base_url}/{settings.meta_api_version}"
MAX_RETRIES = 3
RETRY_BASE_DELAY = 2  # seconds

# Graph error codes for app / user / ad-account request limits
THROTTLE_ERROR_CODES = {4, 17, 32, 613, 80004}


class MetaAPIError(Exception):
    """Raised when the Graph API returns an error or cannot be reached."""

    def __init__(self, message: str, status_code: int = 0, error_code: int = 0):
        self.status_code = status_code
        self.error_code = error_code
        super().__init__(message)

    @property
    def throttled(self) -> bool:
        return self.status_code == 429 or self.error_code in THROTTLE_ERROR_CODES

    @property
    def retryable(self) -> bool:
        return self.throttled or self.status_code >= 500


def _error_from_response(resp: httpx.Response) -> MetaAPIError:
    """Build a MetaAPIError from a non-2xx Graph response."""
    try:
        error = resp.json().get("error", {})
    except ValueError:
        error = {}
    message = error.get("message") or f"HTTP {resp.status_code} from Graph API"
    return MetaAPIError(message, resp.status_code, error.get("code", 0))


def _backoff(attempt: int, resp: Optional[httpx.Response] = None) -> float:
    retry_after = resp.headers.get("retry-after") if resp is not None else None
    if retry_after and retry_after.isdigit():
        return float(retry_after)
    return RETRY_BASE_DELAY * (2 ** (attempt - 1))


class MetaClient:
    """Async Graph API client bound to one access token. Call close() when done."""

    def __init__(self, access_token: Optional[str] = None, timeout: float = 30.0):
        self.access_token = access_token or settings.meta_access_token
        self.timeout = timeout
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    # ── Requests ──

    async def get(self, url: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """GET with retries. Raises MetaAPIError once retries are exhausted."""
        if not self.access_token:
            raise MetaAPIError("META_ACCESS_TOKEN not configured")

        query = dict(params or {})
        query["access_token"] = self.access_token
        client = await self._get_client()

        for attempt in range(1, MAX_RETRIES + 1):
            try:
                resp = await client.get(url, params=query)
            except httpx.RequestError as e:
                if attempt == MAX_RETRIES:
                    raise MetaAPIError(
                        f"Connection failed after {MAX_RETRIES} attempts: {e}"
                    ) from e
                wait = _backoff(attempt)
                logger.warning(f"Request error: {e}. Retrying in {wait}s")
                await asyncio.sleep(wait)
                continue

            if resp.is_success:
                return resp.json()

            error = _error_from_response(resp)
            if not error.retryable or attempt == MAX_RETRIES:
                raise error
            wait = _backoff(attempt, resp)
            logger.warning(
                f"Graph API {'throttled' if error.throttled else 'error'} "
                f"({resp.status_code}/{error.error_code}). "
                f"Retrying in {wait}s (attempt {attempt}/{MAX_RETRIES})",
                extra={"status_code": resp.status_code},
            )
            await asyncio.sleep(wait)

        raise MetaAPIError("Max retries exhausted")

    async def paginated_get(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        max_pages: int = 50,
    ) -> List[Dict[str, Any]]:
        """All `data` rows across pages, following `paging.next`."""
        rows: List[Dict[str, Any]] = []
        next_url: Optional[str] = url
        page_params = params

        pages = 0
        while next_url and pages < max_pages:
            result = await self.get(next_url, page_params)
            rows.extend(result.get("data", []))
            next_url = result.get("paging", {}).get("next")
            # next URLs already carry the query string
            page_params = None
            pages += 1

        if next_url:
            logger.warning(f"Stopped after {max_pages} pages of {url}")
        logger.info(f"Fetched {len(rows)} records from {url}")
        return rows
