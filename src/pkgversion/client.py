"""Async HTTP client for the Tooling API."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import httpx

from .auth import AuthProvider
from .constants import DEFAULT_API_VERSION, DEFAULT_TIMEOUT, USER_AGENT
from .exceptions import (
    ConnectionError,
    SingleRecordQueryError,
    TimeoutError,
    ValidationError,
    raise_for_status,
)
from .models import SaveResult

logger = logging.getLogger(__name__)


def _error_messages(errors: Any) -> list[str]:
    """Normalize the ``errors`` array of a save response to plain messages."""
    messages = []
    for error in errors or []:
        if isinstance(error, dict):
            messages.append(error.get("message") or str(error))
        else:
            messages.append(str(error))
    return messages


class ToolingClient:
    """Async client for the Tooling API of an org.

    Example:
        ```python
        import asyncio
        from pkgversion import ToolingClient

        async def main():
            async with ToolingClient() as client:
                records = await client.query("SELECT Id, Name FROM Package2")
                print(records)

        asyncio.run(main())
        ```
    """

    def __init__(
        self,
        instance_url: str | None = None,
        access_token: str | None = None,
        api_version: str = DEFAULT_API_VERSION,
        timeout: float = DEFAULT_TIMEOUT,
        credentials_path: Path | None = None,
    ) -> None:
        """Initialize the Tooling API client.

        Args:
            instance_url: Org instance URL. If not provided, will be read from
                SF_INSTANCE_URL or ~/.pkgversion/credentials.json.
            access_token: Session token. If not provided, will be read from
                SF_ACCESS_TOKEN or ~/.pkgversion/credentials.json.
            api_version: API version, e.g. "59.0".
            timeout: Default request timeout in seconds.
            credentials_path: Path to credentials file.
        """
        self._api_version = api_version
        self._timeout = timeout
        self._auth = AuthProvider(
            access_token=access_token,
            instance_url=instance_url,
            credentials_path=credentials_path,
        )
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> ToolingClient:
        """Enter async context manager."""
        await self._ensure_client()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Exit async context manager."""
        await self.close()

    @property
    def api_version(self) -> str:
        return self._api_version

    async def _ensure_client(self) -> httpx.AsyncClient:
        """Ensure the HTTP client is initialized."""
        if self._client is None:
            instance_url = self._auth.instance_url
            self._client = httpx.AsyncClient(
                base_url=f"{instance_url}/services/data/v{self._api_version}/tooling",
                timeout=httpx.Timeout(self._timeout),
                headers={
                    "User-Agent": USER_AGENT,
                    "Content-Type": "application/json",
                    "Accept": "application/json",
                },
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def _get_headers(self) -> dict[str, str]:
        """Get request headers including authorization."""
        return self._auth.get_headers()

    async def _request(
        self,
        method: str,
        endpoint: str,
        json_data: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        """Make a request to the Tooling API.

        Args:
            method: HTTP method.
            endpoint: Path relative to the tooling base URL, or an absolute URL.
            json_data: JSON body data.
            params: Query parameters.

        Returns:
            Parsed JSON response ({} for empty responses).

        Raises:
            APIError: On API errors.
            ConnectionError: On connection errors.
            TimeoutError: On timeout.
        """
        client = await self._ensure_client()
        logger.debug(f"{method} {endpoint}")

        try:
            response = await client.request(
                method,
                endpoint,
                headers=self._get_headers(),
                json=json_data,
                params=params,
            )

            if response.status_code == 204 or not response.content:
                raise_for_status(response.status_code, None)
                return {}

            try:
                data = response.json()
            except ValueError:
                data = {"message": response.text}
            raise_for_status(response.status_code, data)

            return data

        except httpx.ConnectError as e:
            raise ConnectionError(f"Cannot connect to the Tooling API: {e}", e) from e
        except httpx.TimeoutException as e:
            raise TimeoutError(f"Request timed out after {self._timeout}s", self._timeout) from e
        except httpx.HTTPError as e:
            raise ConnectionError(f"Tooling API request failed: {e}", e) from e

    # ==================== QUERIES ====================

    async def query(self, soql: str) -> list[dict[str, Any]]:
        """Run a query and return all matching records, following pagination.

        Args:
            soql: Query expression.

        Returns:
            List of record dictionaries.
        """
        data = await self._request("GET", "/query", params={"q": soql})
        records: list[dict[str, Any]] = list(data.get("records", []))

        while not data.get("done", True) and data.get("nextRecordsUrl"):
            next_url = f"{self._auth.instance_url}{data['nextRecordsUrl']}"
            data = await self._request("GET", next_url)
            records.extend(data.get("records", []))

        return records

    async def single_record_query(self, soql: str) -> dict[str, Any]:
        """Run a query that must match exactly one record.

        Raises:
            SingleRecordQueryError: If zero or several records match.
        """
        records = await self.query(soql)
        if len(records) != 1:
            raise SingleRecordQueryError(soql, len(records))
        return records[0]

    # ==================== RECORDS ====================

    async def create(self, sobject: str, fields: dict[str, Any]) -> SaveResult:
        """Create a record.

        Args:
            sobject: Object type name, e.g. "Package2VersionCreateRequest".
            fields: Field values for the new record.

        Returns:
            Save result; success=False when the API rejected the field values.
        """
        try:
            data = await self._request("POST", f"/sobjects/{sobject}", json_data=fields)
        except ValidationError as e:
            return SaveResult(success=False, errors=e.details.get("errors", [e.message]))

        return SaveResult(
            success=bool(data.get("success", True)),
            id=data.get("id"),
            errors=_error_messages(data.get("errors")),
        )

    async def update(self, sobject: str, fields: dict[str, Any]) -> SaveResult:
        """Update a record by id.

        Args:
            sobject: Object type name, e.g. "Package2Version".
            fields: Field values to set; must include "Id".

        Returns:
            Save result; success=False when the API rejected the field values.
        """
        values = dict(fields)
        record_id = values.pop("Id", None)
        if not record_id:
            raise ValueError("An Id is required to update a record")

        try:
            await self._request("PATCH", f"/sobjects/{sobject}/{record_id}", json_data=values)
        except ValidationError as e:
            return SaveResult(
                success=False, id=record_id, errors=e.details.get("errors", [e.message])
            )

        return SaveResult(success=True, id=record_id)
