"""Remote snapshot store client for the snapshot service over HTTP."""

import logging

import httpx
from pydantic import ValidationError

from backend.tracker.exceptions import RemoteStoreError
from backend.tracker.models.snapshot import (
    PersistedSnapshot,
    SaveSnapshotRequest,
    SaveSnapshotResult,
)

logger = logging.getLogger(__name__)


class HttpRemoteStore:
    """RemoteSnapshotStore speaking to `GET/PUT {base_url}/snapshot`."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 4.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize client.

        Args:
            base_url: Snapshot service base URL (e.g. http://localhost:8000)
            timeout: Request timeout in seconds
            client: Optional httpx client (for testing with mocks)
        """
        self._url = f"{base_url.rstrip('/')}/snapshot"
        self._timeout = timeout
        self._client = client

    async def _request(self, method: str, json: dict | None = None) -> httpx.Response:
        close_client = False
        client = self._client
        if client is None:
            client = httpx.AsyncClient(timeout=self._timeout)
            close_client = True

        try:
            return await client.request(method, self._url, json=json)
        except httpx.HTTPError as e:
            raise RemoteStoreError(f"{method} {self._url} failed: {type(e).__name__}") from e
        finally:
            if close_client:
                await client.aclose()

    async def fetch_snapshot(self) -> PersistedSnapshot | None:
        """Fetch the stored snapshot.

        Raises:
            RemoteStoreError: On network errors or unexpected status
        """
        response = await self._request("GET")
        if response.status_code != 200:
            raise RemoteStoreError(f"GET snapshot returned {response.status_code}")

        try:
            data = response.json()
            if data is None:
                return None
            return PersistedSnapshot.model_validate(data)
        except (ValueError, ValidationError) as e:
            # Malformed remote data reads as absent
            logger.warning("Failed to parse cloud snapshot: %s", type(e).__name__)
            return None

    async def save_snapshot(
        self,
        snapshot: PersistedSnapshot,
        *,
        base_updated_at: str | None = None,
        force: bool = False,
    ) -> SaveSnapshotResult:
        """Conditionally write a snapshot.

        Raises:
            RemoteStoreError: On network errors or unexpected status
        """
        body = SaveSnapshotRequest(
            snapshot=snapshot, base_updated_at=base_updated_at, force=force
        ).model_dump(mode="json", by_alias=True)

        response = await self._request("PUT", json=body)
        if response.status_code not in (200, 409):
            raise RemoteStoreError(f"PUT snapshot returned {response.status_code}")

        try:
            return SaveSnapshotResult.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise RemoteStoreError("PUT snapshot returned a malformed body") from e
