"""Id validation and lookups between package version id formats."""

from __future__ import annotations

from .client import ToolingClient
from .constants import PACKAGE_VERSION_PREFIX, SUBSCRIBER_PACKAGE_VERSION_PREFIX
from .exceptions import APIError, InvalidIdError

VALID_ID_LENGTHS = (15, 18)


def validate_id(prefixes: list[str], value: str) -> None:
    """Check that an id has one of the given key prefixes and a valid length.

    Raises:
        InvalidIdError: If the id doesn't match.
    """
    if len(value) not in VALID_ID_LENGTHS or not any(value.startswith(p) for p in prefixes):
        raise InvalidIdError(value, prefixes)


async def get_package_version_id(version_id: str, client: ToolingClient) -> str:
    """Resolve a subscriber package version id (04t) to its package version id (05i).

    Ids in any other format are returned unchanged.
    """
    if not version_id.startswith(SUBSCRIBER_PACKAGE_VERSION_PREFIX):
        return version_id
    record = await client.single_record_query(
        "SELECT Id FROM Package2Version "
        f"WHERE SubscriberPackageVersionId = '{version_id}'"
    )
    if not record.get("Id"):
        raise APIError(0, f"No package version id returned for {version_id}")
    return record["Id"]


async def get_subscriber_package_version_id(version_id: str, client: ToolingClient) -> str:
    """Resolve a package version id (05i) to its subscriber package version id (04t).

    Ids in any other format are returned unchanged.
    """
    if not version_id.startswith(PACKAGE_VERSION_PREFIX):
        return version_id
    record = await client.single_record_query(
        f"SELECT SubscriberPackageVersionId FROM Package2Version WHERE Id = '{version_id}'"
    )
    if not record.get("SubscriberPackageVersionId"):
        raise APIError(0, f"No subscriber package version id returned for {version_id}")
    return record["SubscriberPackageVersionId"]
