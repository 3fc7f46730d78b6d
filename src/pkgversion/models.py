"""Pydantic models for Tooling API records and request options."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

CreateRequestStatus = Literal[
    "Queued",
    "InProgress",
    "Initializing",
    "VerifyingFeaturesAndSettings",
    "VerifyingDependencies",
    "VerifyingMetadata",
    "FinalizingPackageVersion",
    "Success",
    "Error",
]


class ToolingRecord(BaseModel):
    """Base for records read from the Tooling API (PascalCase field aliases)."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class PollingOptions(BaseModel):
    """Polling cadence for waiting on a create request, in seconds."""

    frequency: float = Field(default=0.0, ge=0, description="Seconds between status fetches")
    timeout: float = Field(default=0.0, ge=0, description="Overall wait budget in seconds")


class PackageVersionCreateRequestResult(ToolingRecord):
    """Snapshot of a Package2VersionCreateRequest."""

    id: str = Field(..., alias="Id", description="Create request ID with 08c prefix")
    status: CreateRequestStatus = Field(..., alias="Status")
    package2_id: str | None = Field(None, alias="Package2Id")
    package2_version_id: str | None = Field(None, alias="Package2VersionId")
    subscriber_package_version_id: str | None = Field(
        None, alias="SubscriberPackageVersionId", description="Set once the request succeeds"
    )
    tag: str | None = Field(None, alias="Tag")
    branch: str | None = Field(None, alias="Branch")
    error: list[str] = Field(default_factory=list, alias="Error")
    created_date: str | None = Field(None, alias="CreatedDate")
    created_by: str | None = Field(None, alias="CreatedBy")
    has_metadata_removed: bool | None = Field(None, alias="HasMetadataRemoved")


class PackageVersionRecord(ToolingRecord):
    """A Package2Version record."""

    id: str | None = Field(None, alias="Id")
    package2_id: str | None = Field(None, alias="Package2Id")
    subscriber_package_version_id: str | None = Field(None, alias="SubscriberPackageVersionId")
    name: str | None = Field(None, alias="Name")
    description: str | None = Field(None, alias="Description")
    major_version: int | None = Field(None, alias="MajorVersion")
    minor_version: int | None = Field(None, alias="MinorVersion")
    patch_version: int | None = Field(None, alias="PatchVersion")
    build_number: int | None = Field(None, alias="BuildNumber")
    branch: str | None = Field(None, alias="Branch")
    tag: str | None = Field(None, alias="Tag")
    is_released: bool | None = Field(None, alias="IsReleased")
    is_deprecated: bool | None = Field(None, alias="IsDeprecated")

    @property
    def semantic_version(self) -> str:
        """Version as ``major.minor.patch``, missing parts read as 0."""
        return f"{self.major_version or 0}.{self.minor_version or 0}.{self.patch_version or 0}"

    @property
    def version_number(self) -> str:
        """Version as ``major.minor.patch.build``."""
        return f"{self.semantic_version}.{self.build_number or 0}"


class PackageVersionReportResult(PackageVersionRecord):
    """Package2Version record with the fields shown by a version report."""

    ancestor_id: str | None = Field(None, alias="AncestorId")
    validation_skipped: bool | None = Field(None, alias="ValidationSkipped")
    is_password_protected: bool | None = Field(None, alias="IsPasswordProtected")
    created_date: str | None = Field(None, alias="CreatedDate")
    code_coverage: dict[str, Any] | None = Field(None, alias="CodeCoverage")
    has_passed_code_coverage_check: bool | None = Field(
        None, alias="HasPassedCodeCoverageCheck"
    )
    language: str | None = Field(None, alias="Language")
    release_version: str | None = Field(None, alias="ReleaseVersion")
    build_duration_in_seconds: int | None = Field(None, alias="BuildDurationInSeconds")
    has_metadata_removed: bool | None = Field(None, alias="HasMetadataRemoved")
    converted_from_version_id: str | None = Field(None, alias="ConvertedFromVersionId")


class SaveResult(BaseModel):
    """Result of creating or updating a record."""

    success: bool
    id: str | None = None
    errors: list[str] = Field(default_factory=list)


class PackageVersionCreateOptions(BaseModel):
    """Parameters for submitting a package version create request."""

    package: str = Field(..., min_length=1, description="Package ID (0Ho) or alias")
    version_info: str | None = Field(
        None, description="Base64-encoded zip of the version's metadata and descriptor"
    )
    tag: str | None = None
    branch: str | None = None
    installation_key: str | None = None
    installation_key_bypass: bool = False
    code_coverage: bool = False
    skip_validation: bool = False
    async_validation: bool = False


class PackageVersionUpdateOptions(BaseModel):
    """Fields that can be changed on an existing package version (all optional)."""

    version_name: str | None = Field(None, description="New version name")
    version_description: str | None = Field(None, description="New version description")
    branch: str | None = None
    tag: str | None = None
    installation_key: str | None = None

    def to_fields(self) -> dict[str, Any]:
        """Map the set options onto Package2Version field names."""
        names = {
            "version_name": "Name",
            "version_description": "Description",
            "branch": "Branch",
            "tag": "Tag",
            "installation_key": "InstallKey",
        }
        return {
            names[key]: value
            for key, value in self.model_dump().items()
            if value is not None
        }
