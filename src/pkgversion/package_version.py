"""Package version operations: create and wait, report, deprecate, promote, update."""

from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import dataclass
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from .client import ToolingClient
from .constants import (
    AUTOUPDATE_DISABLE_FOR_PACKAGE_CREATE_ENV,
    AUTOUPDATE_DISABLE_FOR_PACKAGE_VERSION_CREATE_ENV,
    ENQUEUED_STATUSES,
    ERROR_STATUS,
    IN_PROGRESS_STATUSES,
    PACKAGE_PREFIX,
    PACKAGE_VERSION_PREFIX,
    SUBSCRIBER_PACKAGE_VERSION_PREFIX,
    SUCCESS_STATUS,
)
from .events import (
    EnqueuedEvent,
    ErrorEvent,
    EventSink,
    InProgressEvent,
    SuccessEvent,
    TimedOutEvent,
    emit,
)
from .exceptions import (
    APIError,
    NotFoundError,
    PackagingError,
    PollingTimeoutError,
    SaveError,
    SubmissionError,
    apply_error_action,
)
from .ids import get_package_version_id, get_subscriber_package_version_id, validate_id
from .models import (
    PackageVersionCreateOptions,
    PackageVersionCreateRequestResult,
    PackageVersionRecord,
    PackageVersionReportResult,
    PackageVersionUpdateOptions,
    PollingOptions,
    SaveResult,
)
from .project import ManifestPatch, ProjectManifest

logger = logging.getLogger(__name__)

CREATE_REQUEST_QUERY = (
    "SELECT Id, Status, Package2Id, Package2VersionId, "
    "Package2Version.SubscriberPackageVersionId, Package2Version.HasMetadataRemoved, "
    "Tag, Branch, CreatedDate, CreatedById "
    "FROM Package2VersionCreateRequest WHERE Id = '{id}'"
)
CREATE_REQUEST_ERRORS_QUERY = (
    "SELECT Message FROM Package2VersionCreateRequestError WHERE ParentRequest.Id = '{id}'"
)
VERSION_FIELDS_QUERY = (
    "SELECT Name, Package2Id, SubscriberPackageVersionId, MajorVersion, MinorVersion, "
    "PatchVersion, BuildNumber, Description, Branch "
    "FROM Package2Version WHERE Id = '{id}'"
)
PACKAGE_NAME_QUERY = "SELECT Name FROM Package2 WHERE Id = '{id}'"

REPORT_FIELDS = [
    "Id",
    "Package2Id",
    "SubscriberPackageVersionId",
    "Name",
    "Description",
    "Tag",
    "Branch",
    "AncestorId",
    "ValidationSkipped",
    "MajorVersion",
    "MinorVersion",
    "PatchVersion",
    "BuildNumber",
    "IsReleased",
    "IsDeprecated",
    "IsPasswordProtected",
    "CreatedDate",
]
VERBOSE_REPORT_FIELDS = [
    "CodeCoverage",
    "HasPassedCodeCoverageCheck",
    "Language",
    "ReleaseVersion",
    "BuildDurationInSeconds",
    "HasMetadataRemoved",
    "ConvertedFromVersionId",
]


@dataclass
class _PollState:
    remaining_wait_time: float
    last_result: PackageVersionCreateRequestResult | None = None


def _env_flag(name: str) -> bool:
    return bool(os.environ.get(name))


def build_version_alias(
    package_name: str,
    version: PackageVersionRecord,
) -> str:
    """Build the alias for a version: ``name@M.m.p[-build][-branch]``."""
    alias = f"{package_name}@{version.semantic_version}"
    if version.build_number is not None:
        alias += f"-{version.build_number}"
    if version.branch:
        alias += f"-{version.branch}"
    return alias


class PackageVersion:
    """Operations on package versions of a Dev Hub org.

    Example:
        ```python
        from pkgversion import (
            PackageVersion,
            PackageVersionCreateOptions,
            PollingOptions,
            ProjectManifest,
            ToolingClient,
        )

        async with ToolingClient() as client:
            project = ProjectManifest.load(".")
            pv = PackageVersion(client, project)
            result = await pv.create(
                PackageVersionCreateOptions(
                    package="my-pkg", version_info=zipped, installation_key="s3cret"
                ),
                PollingOptions(frequency=30, timeout=3600),
                on_event=print,
            )
        ```
    """

    def __init__(self, client: ToolingClient, project: ProjectManifest | None = None) -> None:
        """Initialize package version operations.

        Args:
            client: Tooling API client for the Dev Hub org.
            project: Project manifest to resolve aliases from and to update
                after a version is created. Optional.
        """
        self._client = client
        self._project = project

    def _resolve_alias(self, id_or_alias: str) -> str:
        if self._project is None:
            return id_or_alias
        return self._project.resolve_alias(id_or_alias)

    # ==================== CREATE ====================

    async def submit(self, options: PackageVersionCreateOptions) -> str:
        """Submit a package version create request.

        Args:
            options: Create parameters.

        Returns:
            Id of the create request (08c).

        Raises:
            SubmissionError: If the service rejects the request.
        """
        package_id = self._resolve_alias(options.package)
        validate_id([PACKAGE_PREFIX], package_id)

        if not options.installation_key and not options.installation_key_bypass:
            raise ValueError("An installation key or installation_key_bypass=True is required")

        fields: dict[str, Any] = {
            "Package2Id": package_id,
            "CalculateCodeCoverage": options.code_coverage,
            "SkipValidation": options.skip_validation,
            "AsyncValidation": options.async_validation,
        }
        if options.version_info:
            fields["VersionInfo"] = options.version_info
        if options.tag:
            fields["Tag"] = options.tag
        if options.branch:
            fields["Branch"] = options.branch
        if options.installation_key:
            fields["InstallKey"] = options.installation_key

        result = await self._client.create("Package2VersionCreateRequest", fields)
        if not result.success or not result.id:
            errors = result.errors or ["No request id returned"]
            raise SubmissionError(
                "Failed to create package version request:\n" + "\n".join(errors), errors
            )

        logger.info(f"Submitted package version create request {result.id} for {package_id}")
        return result.id

    async def create(
        self,
        options: PackageVersionCreateOptions,
        polling: PollingOptions | None = None,
        on_event: EventSink | None = None,
    ) -> PackageVersionCreateRequestResult:
        """Create a new package version and optionally wait for it.

        Args:
            options: Create parameters.
            polling: Frequency and timeout in seconds. The default (0, 0)
                fetches the request status once and returns.
            on_event: Receives lifecycle events while polling.

        Returns:
            The create request as last observed.
        """
        try:
            request_id = await self.submit(options)
            return await self.wait_for_create_version(
                request_id, polling or PollingOptions(), on_event
            )
        except PackagingError as e:
            apply_error_action(e)
            raise

    async def get_create_version_report(
        self, request_id: str
    ) -> PackageVersionCreateRequestResult:
        """Get the current state of a package version create request.

        Raises:
            NotFoundError: If no request has this id.
        """
        try:
            records = await self._client.query(CREATE_REQUEST_QUERY.format(id=request_id))
            if not records:
                raise NotFoundError("Package version create request", request_id)

            record = records[0]
            version = record.get("Package2Version") or {}
            errors: list[str] = []
            if record.get("Status") == ERROR_STATUS:
                error_records = await self._client.query(
                    CREATE_REQUEST_ERRORS_QUERY.format(id=request_id)
                )
                errors = [r["Message"] for r in error_records if r.get("Message")]

            try:
                return PackageVersionCreateRequestResult(
                    id=record["Id"],
                    status=record["Status"],
                    package2_id=record.get("Package2Id"),
                    package2_version_id=record.get("Package2VersionId"),
                    subscriber_package_version_id=version.get("SubscriberPackageVersionId"),
                    has_metadata_removed=version.get("HasMetadataRemoved"),
                    tag=record.get("Tag"),
                    branch=record.get("Branch"),
                    error=errors,
                    created_date=record.get("CreatedDate"),
                    created_by=record.get("CreatedById"),
                )
            except (KeyError, PydanticValidationError) as e:
                raise APIError(0, f"Unexpected create request record: {e}") from e
        except PackagingError as e:
            apply_error_action(e)
            raise

    async def wait_for_create_version(
        self,
        request_id: str,
        polling: PollingOptions,
        on_event: EventSink | None = None,
    ) -> PackageVersionCreateRequestResult:
        """Wait for a package version create request to finish.

        Emits "enqueued" and "in-progress" events while the request runs,
        then "success" or "error", or "timed-out" when the timeout expires
        first. Every event carries the request snapshot; the non-final ones
        also carry the remaining wait time.

        On success the project manifest (if any) is updated before the
        "success" event is emitted; a failure there raises and no "success"
        event is sent.

        Args:
            request_id: Create request id (08c).
            polling: Frequency and timeout in seconds.
            on_event: Receives lifecycle events.

        Returns:
            The final create request snapshot, or the single fetched snapshot
            when polling.timeout is 0.

        Raises:
            PollingTimeoutError: If the timeout expires first.
        """
        if polling.timeout <= 0:
            return await self.get_create_version_report(request_id)

        state = _PollState(remaining_wait_time=polling.timeout)
        try:
            try:
                result = await asyncio.wait_for(
                    self._poll_until_finished(request_id, polling, state, on_event),
                    timeout=polling.timeout,
                )
            except asyncio.TimeoutError:
                logger.warning(
                    f"Timed out after {polling.timeout:g}s waiting for request {request_id}"
                )
                await emit(on_event, TimedOutEvent(request=state.last_result))
                raise PollingTimeoutError(
                    request_id, polling.timeout, state.last_result
                ) from None

            if result.status == SUCCESS_STATUS:
                await self._update_project_with_package_version(result)
                logger.info(
                    f"Package version {result.subscriber_package_version_id} created "
                    f"by request {request_id}"
                )
                await emit(on_event, SuccessEvent(request=result))
            else:
                logger.info(f"Package version create request {request_id} failed")
                await emit(on_event, ErrorEvent(request=result))
            return result
        except PackagingError as e:
            apply_error_action(e)
            raise

    async def _poll_until_finished(
        self,
        request_id: str,
        polling: PollingOptions,
        state: _PollState,
        on_event: EventSink | None,
    ) -> PackageVersionCreateRequestResult:
        while True:
            result = await self.get_create_version_report(request_id)
            state.last_result = result
            logger.debug(
                f"Request {request_id} is {result.status}, "
                f"{state.remaining_wait_time:g}s left"
            )

            if result.status in ENQUEUED_STATUSES:
                event = EnqueuedEvent(request=result, remaining_wait_time=state.remaining_wait_time)
            elif result.status in IN_PROGRESS_STATUSES:
                event = InProgressEvent(
                    request=result, remaining_wait_time=state.remaining_wait_time
                )
            else:
                return result

            await emit(on_event, event)
            state.remaining_wait_time -= polling.frequency
            await asyncio.sleep(polling.frequency)

    # ==================== PROJECT UPDATE ====================

    async def _update_project_with_package_version(
        self, result: PackageVersionCreateRequestResult
    ) -> None:
        """Record a new version in the project manifest's aliases and directories.

        SFDX_PROJECT_AUTOUPDATE_DISABLE_FOR_PACKAGE_VERSION_CREATE skips the
        whole update; SFDX_PROJECT_AUTOUPDATE_DISABLE_FOR_PACKAGE_CREATE skips
        only the new alias.
        """
        if self._project is None or _env_flag(AUTOUPDATE_DISABLE_FOR_PACKAGE_VERSION_CREATE_ENV):
            return
        if not result.package2_version_id:
            raise APIError(0, f"Request {result.id} succeeded without a package version id")

        record = await self._client.single_record_query(
            VERSION_FIELDS_QUERY.format(id=result.package2_version_id)
        )
        try:
            version = PackageVersionRecord.model_validate(record)
        except PydanticValidationError as e:
            raise APIError(0, f"Unexpected package version record: {e}") from e
        package_id = version.package2_id or result.package2_id
        if not package_id:
            raise APIError(0, f"Package version {result.package2_version_id} has no package id")

        aliases: dict[str, str] = {}
        subscriber_id = version.subscriber_package_version_id or result.subscriber_package_version_id
        if subscriber_id and not _env_flag(AUTOUPDATE_DISABLE_FOR_PACKAGE_CREATE_ENV):
            package_name = await self._package_alias_name(package_id)
            aliases[build_version_alias(package_name, version)] = subscriber_id

        patch = ManifestPatch(
            package_aliases=aliases,
            package_id=package_id,
            directory_fields={
                "versionNumber": version.version_number,
                "versionDescription": version.description,
            },
        )
        self._project.apply_patch(patch)

    async def _package_alias_name(self, package_id: str) -> str:
        """Name used on the left side of a version alias."""
        aliases = self._project.aliases_for_id(package_id) if self._project else []
        if aliases:
            return ",".join(aliases)
        record = await self._client.single_record_query(PACKAGE_NAME_QUERY.format(id=package_id))
        if not record.get("Name"):
            raise APIError(0, f"Package {package_id} has no name")
        return str(record["Name"]).replace(" ", "_")

    # ==================== REPORT ====================

    async def report(self, id_or_alias: str, verbose: bool = False) -> PackageVersionReportResult:
        """Get details of a package version.

        Args:
            id_or_alias: Version id (04t or 05i) or alias.
            verbose: Include code coverage and build details.

        Raises:
            InvalidIdError: If the id has an unexpected format.
            NotFoundError: If the version doesn't exist.
        """
        try:
            version_id = self._resolve_alias(id_or_alias)
            validate_id(
                [SUBSCRIBER_PACKAGE_VERSION_PREFIX, PACKAGE_VERSION_PREFIX], version_id
            )
            package_version_id = await get_package_version_id(version_id, self._client)

            fields = REPORT_FIELDS + (VERBOSE_REPORT_FIELDS if verbose else [])
            records = await self._client.query(
                f"SELECT {', '.join(fields)} FROM Package2Version "
                f"WHERE Id = '{package_version_id}'"
            )
            if not records:
                raise NotFoundError("Package version", id_or_alias)
            return PackageVersionReportResult.model_validate(records[0])
        except PackagingError as e:
            apply_error_action(e)
            raise

    # ==================== STATE CHANGES ====================

    async def delete(self, id_or_alias: str) -> SaveResult:
        """Deprecate a package version.

        Returns:
            Save result whose id is the subscriber package version id.
        """
        return await self._update_deprecation(id_or_alias, True)

    async def undelete(self, id_or_alias: str) -> SaveResult:
        """Undeprecate a package version."""
        return await self._update_deprecation(id_or_alias, False)

    async def promote(self, id_or_alias: str) -> SaveResult:
        """Mark a package version as released.

        Args:
            id_or_alias: Version id (04t or 05i) or alias. A 04t id is first
                resolved to its package version id.

        Raises:
            SaveError: If the update is rejected.
        """
        package_version_id = await self._package_version_id_for(id_or_alias)
        result = await self._client.update(
            "Package2Version", {"Id": package_version_id, "IsReleased": True}
        )
        if not result.success:
            raise SaveError("Package2Version", "update", result.errors)
        logger.info(f"Promoted package version {package_version_id}")
        return result

    async def update(
        self, id_or_alias: str, options: PackageVersionUpdateOptions
    ) -> SaveResult:
        """Change the name, description, branch, tag or installation key of a version.

        Raises:
            ValueError: If no field is set in options.
            SaveError: If the update is rejected.
        """
        fields = options.to_fields()
        if not fields:
            raise ValueError("Nothing to update: set at least one field")

        package_version_id = await self._package_version_id_for(id_or_alias)
        result = await self._client.update(
            "Package2Version", {"Id": package_version_id, **fields}
        )
        if not result.success:
            raise SaveError("Package2Version", "update", result.errors)
        return result

    async def _package_version_id_for(self, id_or_alias: str) -> str:
        version_id = self._resolve_alias(id_or_alias)
        validate_id([SUBSCRIBER_PACKAGE_VERSION_PREFIX, PACKAGE_VERSION_PREFIX], version_id)
        return await get_package_version_id(version_id, self._client)

    async def _update_deprecation(self, id_or_alias: str, is_deprecated: bool) -> SaveResult:
        version_id = self._resolve_alias(id_or_alias)
        validate_id([SUBSCRIBER_PACKAGE_VERSION_PREFIX, PACKAGE_VERSION_PREFIX], version_id)
        package_version_id = await get_package_version_id(version_id, self._client)

        result = await self._client.update(
            "Package2Version", {"Id": package_version_id, "IsDeprecated": is_deprecated}
        )
        if not result.success:
            raise SaveError("Package2", "update", result.errors)

        result.id = await get_subscriber_package_version_id(version_id, self._client)
        logger.info(
            f"{'Deprecated' if is_deprecated else 'Undeprecated'} package version {result.id}"
        )
        return result
