"""Shared constants for the pkgversion library."""

DEFAULT_API_VERSION = "59.0"
DEFAULT_TIMEOUT = 30.0
USER_AGENT = "pkgversion-python/0.1.0"

# Id key prefixes
SUBSCRIBER_PACKAGE_VERSION_PREFIX = "04t"
PACKAGE_VERSION_PREFIX = "05i"
PACKAGE_PREFIX = "0Ho"

# Environment overrides that stop manifest auto-update after a successful create
AUTOUPDATE_DISABLE_FOR_PACKAGE_CREATE_ENV = "SFDX_PROJECT_AUTOUPDATE_DISABLE_FOR_PACKAGE_CREATE"
AUTOUPDATE_DISABLE_FOR_PACKAGE_VERSION_CREATE_ENV = (
    "SFDX_PROJECT_AUTOUPDATE_DISABLE_FOR_PACKAGE_VERSION_CREATE"
)

ENQUEUED_STATUSES = frozenset({"Queued"})
IN_PROGRESS_STATUSES = frozenset(
    {
        "InProgress",
        "Initializing",
        "VerifyingFeaturesAndSettings",
        "VerifyingDependencies",
        "VerifyingMetadata",
        "FinalizingPackageVersion",
    }
)
SUCCESS_STATUS = "Success"
ERROR_STATUS = "Error"

PROJECT_FILE_NAME = "sfdx-project.json"
