"""Shared fixtures and a fake Tooling API org for tests."""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any

import pytest
import respx
from httpx import Request, Response

from pkgversion.client import ToolingClient
from pkgversion.project import ProjectManifest

INSTANCE_URL = "https://acme.my.site.com"
TOOLING_URL = f"{INSTANCE_URL}/services/data/v59.0/tooling"

PACKAGE_ID = "0Ho000000000001"
OTHER_PACKAGE_ID = "0Ho000000000002"
VERSION_ID = "05i000000000001"
SUBSCRIBER_VERSION_ID = "04t000000000001AAA"
REQUEST_ID = "08c000000000001"

_QUOTED_VALUE = re.compile(r"= '([^']*)'")


# ==================== MOCK DATA ====================


def make_create_request_dict(
    status: str = "Queued",
    request_id: str = REQUEST_ID,
    package_id: str = PACKAGE_ID,
    version_id: str | None = None,
    subscriber_id: str | None = None,
    tag: str | None = None,
    branch: str | None = None,
) -> dict[str, Any]:
    """Create a mock Package2VersionCreateRequest record."""
    if status == "Success":
        version_id = version_id or VERSION_ID
        subscriber_id = subscriber_id or SUBSCRIBER_VERSION_ID
    return {
        "attributes": {"type": "Package2VersionCreateRequest"},
        "Id": request_id,
        "Status": status,
        "Package2Id": package_id,
        "Package2VersionId": version_id,
        "Package2Version": (
            {"SubscriberPackageVersionId": subscriber_id, "HasMetadataRemoved": False}
            if version_id
            else None
        ),
        "Tag": tag,
        "Branch": branch,
        "CreatedDate": "2026-10-18T10:00:00.000+0000",
        "CreatedById": "005000000000001",
    }


def make_version_dict(
    version_id: str = VERSION_ID,
    package_id: str = PACKAGE_ID,
    subscriber_id: str = SUBSCRIBER_VERSION_ID,
    major: int = 1,
    minor: int = 2,
    patch: int = 3,
    build: int | None = 7,
    branch: str | None = None,
    description: str | None = "Spring release",
    is_released: bool = False,
    is_deprecated: bool = False,
) -> dict[str, Any]:
    """Create a mock Package2Version record."""
    return {
        "attributes": {"type": "Package2Version"},
        "Id": version_id,
        "Package2Id": package_id,
        "SubscriberPackageVersionId": subscriber_id,
        "Name": f"ver {major}.{minor}",
        "Description": description,
        "MajorVersion": major,
        "MinorVersion": minor,
        "PatchVersion": patch,
        "BuildNumber": build,
        "Branch": branch,
        "Tag": None,
        "IsReleased": is_released,
        "IsDeprecated": is_deprecated,
    }


def make_project_dict() -> dict[str, Any]:
    """Create a mock sfdx-project.json document."""
    return {
        "packageDirectories": [
            {"path": "base", "id": OTHER_PACKAGE_ID, "versionNumber": "0.1.0.NEXT"},
            {
                "path": "force-app",
                "id": PACKAGE_ID,
                "default": True,
                "versionNumber": "1.2.0.NEXT",
                "versionDescription": "Old description",
            },
            {"path": "extras", "package": "extras", "versionNumber": "3.0.0.NEXT"},
        ],
        "packageAliases": {"my-pkg": PACKAGE_ID, "base": OTHER_PACKAGE_ID},
        "sourceApiVersion": "59.0",
    }


class FakeToolingOrg:
    """Routes Tooling API requests to in-memory records.

    ``create_request_statuses`` is consumed one status per create request
    query; the last one repeats once the list is exhausted.
    """

    def __init__(self) -> None:
        self.create_request_statuses: list[str] = []
        self.create_request_branch: str | None = None
        self.create_request_errors: list[str] = []
        self.versions: dict[str, dict[str, Any]] = {}
        self.packages: dict[str, dict[str, Any]] = {}
        self.queries: list[str] = []
        self.updates: list[tuple[str, str, dict[str, Any]]] = []
        self.update_errors: list[str] = []
        self.created: list[dict[str, Any]] = []
        self.create_errors: list[str] = []
        self.query_failure: tuple[int, str] | None = None

    def add_version(self, **kwargs: Any) -> dict[str, Any]:
        record = make_version_dict(**kwargs)
        self.versions[record["Id"]] = record
        return record

    def create_request_queries(self) -> list[str]:
        return [q for q in self.queries if "FROM Package2VersionCreateRequest WHERE" in q]

    # ---- handlers ----

    def handle_query(self, request: Request) -> Response:
        soql = request.url.params["q"]
        self.queries.append(soql)
        if self.query_failure:
            status_code, message = self.query_failure
            return Response(status_code, json=[{"message": message, "errorCode": "UNKNOWN_EXCEPTION"}])
        records = self._records_for(soql)
        return Response(200, json={"totalSize": len(records), "done": True, "records": records})

    def handle_create(self, request: Request) -> Response:
        body = json.loads(request.content)
        self.created.append(body)
        if self.create_errors:
            return Response(
                400,
                json=[{"message": m, "errorCode": "FIELD_INTEGRITY_EXCEPTION"} for m in self.create_errors],
            )
        return Response(201, json={"id": REQUEST_ID, "success": True, "errors": []})

    def handle_update(self, request: Request) -> Response:
        _, sobject, record_id = request.url.path.rsplit("/", 2)
        body = json.loads(request.content)
        self.updates.append((sobject, record_id, body))
        if self.update_errors:
            return Response(
                400,
                json=[{"message": m, "errorCode": "FIELD_INTEGRITY_EXCEPTION"} for m in self.update_errors],
            )
        return Response(204)

    # ---- query routing ----

    def _records_for(self, soql: str) -> list[dict[str, Any]]:
        match = _QUOTED_VALUE.search(soql)
        value = match.group(1) if match else None

        if "FROM Package2VersionCreateRequestError" in soql:
            return [{"Message": m} for m in self.create_request_errors]

        if "FROM Package2VersionCreateRequest" in soql:
            if not self.create_request_statuses:
                return []
            if len(self.create_request_statuses) > 1:
                status = self.create_request_statuses.pop(0)
            else:
                status = self.create_request_statuses[0]
            return [make_create_request_dict(status, branch=self.create_request_branch)]

        if "FROM Package2Version" in soql:
            if "WHERE SubscriberPackageVersionId" in soql:
                return [v for v in self.versions.values() if v["SubscriberPackageVersionId"] == value]
            return [v for v in self.versions.values() if v["Id"] == value]

        if "FROM Package2" in soql:
            return [p for p in self.packages.values() if p["Id"] == value]

        return []


# ==================== FIXTURES ====================


@pytest.fixture
def tooling_url() -> str:
    """Base URL for Tooling API mocks."""
    return TOOLING_URL


@pytest.fixture
def fake_org():
    """A FakeToolingOrg wired to respx routes for the duration of a test."""
    org = FakeToolingOrg()
    with respx.mock(assert_all_called=False) as mock:
        mock.get(f"{TOOLING_URL}/query").mock(side_effect=org.handle_query)
        mock.post(f"{TOOLING_URL}/sobjects/Package2VersionCreateRequest").mock(
            side_effect=org.handle_create
        )
        mock.patch(url__regex=rf"{re.escape(TOOLING_URL)}/sobjects/\w+/\w+").mock(
            side_effect=org.handle_update
        )
        yield org


@pytest.fixture
def client() -> ToolingClient:
    """An unopened client for the fake org."""
    return ToolingClient(instance_url=INSTANCE_URL, access_token="00Dtoken!session")


@pytest.fixture
def project_path(tmp_path: Path) -> Path:
    """A project directory holding an sfdx-project.json."""
    path = tmp_path / "sfdx-project.json"
    path.write_text(json.dumps(make_project_dict(), indent=2))
    return path


@pytest.fixture
def project(project_path: Path) -> ProjectManifest:
    """The loaded project manifest."""
    return ProjectManifest.load(project_path)


@pytest.fixture
def clear_autoupdate_env(monkeypatch):
    """Make sure no manifest auto-update override leaks in from the environment."""
    monkeypatch.delenv("SFDX_PROJECT_AUTOUPDATE_DISABLE_FOR_PACKAGE_CREATE", raising=False)
    monkeypatch.delenv("SFDX_PROJECT_AUTOUPDATE_DISABLE_FOR_PACKAGE_VERSION_CREATE", raising=False)


class EventRecorder:
    """Event sink that records every event it receives."""

    def __init__(self) -> None:
        self.events: list[Any] = []

    def __call__(self, event: Any) -> None:
        self.events.append(event)

    @property
    def types(self) -> list[str]:
        return [event.type for event in self.events]


@pytest.fixture
def recorder() -> EventRecorder:
    return EventRecorder()
