"""Client library for package versions on a Tooling API packaging platform.

Creates package versions and waits for the asynchronous build, keeps the
project manifest's aliases and package directories in step with new
versions, and promotes, deprecates, updates and reports on versions.

Basic Usage:
    ```python
    from pkgversion import (
        PackageVersion,
        PackageVersionCreateOptions,
        PollingOptions,
        ProjectManifest,
        ToolingClient,
    )

    async with ToolingClient() as client:
        pv = PackageVersion(client, ProjectManifest.load("."))
        result = await pv.create(
            PackageVersionCreateOptions(package="my-pkg", version_info=zipped, installation_key_bypass=True),
            PollingOptions(frequency=30, timeout=3600),
            on_event=lambda event: print(event.type),
        )
        print(result.subscriber_package_version_id)
    ```
"""

from ._sync import PackageVersionSync
from .auth import (
    AuthProvider,
    Credentials,
    clear_credentials,
    get_credentials,
    load_credentials_from_file,
    save_credentials_to_file,
)
from .client import ToolingClient
from .events import (
    BaseEvent,
    EnqueuedEvent,
    ErrorEvent,
    EventSink,
    InProgressEvent,
    LifecycleEvent,
    SuccessEvent,
    TimedOutEvent,
)
from .exceptions import (
    APIError,
    AuthenticationError,
    ConnectionError,
    ForbiddenError,
    InvalidIdError,
    ManifestError,
    ManifestNotFoundError,
    ManifestParseError,
    NotFoundError,
    PackagingError,
    PollingTimeoutError,
    RateLimitError,
    SaveError,
    SingleRecordQueryError,
    SubmissionError,
    TimeoutError,
    ValidationError,
    apply_error_action,
)
from .models import (
    PackageVersionCreateOptions,
    PackageVersionCreateRequestResult,
    PackageVersionRecord,
    PackageVersionReportResult,
    PackageVersionUpdateOptions,
    PollingOptions,
    SaveResult,
)
from .package_version import PackageVersion, build_version_alias
from .project import ManifestPatch, ProjectManifest

__version__ = "0.1.0"

__all__ = [
    # Version
    "__version__",
    # Clients
    "ToolingClient",
    "PackageVersion",
    "PackageVersionSync",
    # Models
    "PollingOptions",
    "PackageVersionCreateOptions",
    "PackageVersionCreateRequestResult",
    "PackageVersionRecord",
    "PackageVersionReportResult",
    "PackageVersionUpdateOptions",
    "SaveResult",
    "build_version_alias",
    # Project
    "ProjectManifest",
    "ManifestPatch",
    # Events
    "BaseEvent",
    "EnqueuedEvent",
    "InProgressEvent",
    "SuccessEvent",
    "ErrorEvent",
    "TimedOutEvent",
    "LifecycleEvent",
    "EventSink",
    # Auth
    "AuthProvider",
    "Credentials",
    "get_credentials",
    "load_credentials_from_file",
    "save_credentials_to_file",
    "clear_credentials",
    # Exceptions
    "PackagingError",
    "APIError",
    "AuthenticationError",
    "ForbiddenError",
    "NotFoundError",
    "ValidationError",
    "RateLimitError",
    "ConnectionError",
    "TimeoutError",
    "SingleRecordQueryError",
    "InvalidIdError",
    "SubmissionError",
    "PollingTimeoutError",
    "SaveError",
    "ManifestError",
    "ManifestNotFoundError",
    "ManifestParseError",
    "apply_error_action",
]
