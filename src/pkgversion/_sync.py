"""Synchronous wrapper for package version operations."""

from __future__ import annotations

import asyncio
import threading
from pathlib import Path
from typing import Any

from .client import ToolingClient
from .constants import DEFAULT_API_VERSION, DEFAULT_TIMEOUT
from .events import EventSink
from .models import (
    PackageVersionCreateOptions,
    PackageVersionCreateRequestResult,
    PackageVersionReportResult,
    PackageVersionUpdateOptions,
    PollingOptions,
    SaveResult,
)
from .package_version import PackageVersion
from .project import ProjectManifest


def _run_sync(coro: Any) -> Any:
    """Run a coroutine synchronously.

    When called from inside a running event loop the coroutine runs on a
    fresh loop in a helper thread.
    """
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        loop = None

    if loop is None:
        return asyncio.run(coro)

    result: Any = None
    exception: BaseException | None = None

    def run_in_thread() -> None:
        nonlocal result, exception
        try:
            result = asyncio.run(coro)
        except BaseException as e:
            exception = e

    thread = threading.Thread(target=run_in_thread)
    thread.start()
    thread.join()

    if exception is not None:
        raise exception
    return result


class PackageVersionSync:
    """Blocking counterpart of PackageVersion.

    Each call opens its own HTTP connection pool on a fresh event loop.

    Example:
        ```python
        from pkgversion import PackageVersionSync, ProjectManifest

        pv = PackageVersionSync(project=ProjectManifest.load("."))
        print(pv.promote("my-pkg@1.2.0-1"))
        ```
    """

    def __init__(
        self,
        project: ProjectManifest | None = None,
        instance_url: str | None = None,
        access_token: str | None = None,
        api_version: str = DEFAULT_API_VERSION,
        timeout: float = DEFAULT_TIMEOUT,
        credentials_path: Path | None = None,
    ) -> None:
        self._project = project
        self._client_options: dict[str, Any] = {
            "instance_url": instance_url,
            "access_token": access_token,
            "api_version": api_version,
            "timeout": timeout,
            "credentials_path": credentials_path,
        }

    async def _call(self, method: str, *args: Any, **kwargs: Any) -> Any:
        async with ToolingClient(**self._client_options) as client:
            operations = PackageVersion(client, self._project)
            return await getattr(operations, method)(*args, **kwargs)

    def create(
        self,
        options: PackageVersionCreateOptions,
        polling: PollingOptions | None = None,
        on_event: EventSink | None = None,
    ) -> PackageVersionCreateRequestResult:
        """Create a package version, waiting according to polling."""
        return _run_sync(self._call("create", options, polling, on_event))

    def wait_for_create_version(
        self,
        request_id: str,
        polling: PollingOptions,
        on_event: EventSink | None = None,
    ) -> PackageVersionCreateRequestResult:
        return _run_sync(self._call("wait_for_create_version", request_id, polling, on_event))

    def get_create_version_report(self, request_id: str) -> PackageVersionCreateRequestResult:
        return _run_sync(self._call("get_create_version_report", request_id))

    def report(self, id_or_alias: str, verbose: bool = False) -> PackageVersionReportResult:
        return _run_sync(self._call("report", id_or_alias, verbose))

    def delete(self, id_or_alias: str) -> SaveResult:
        return _run_sync(self._call("delete", id_or_alias))

    def undelete(self, id_or_alias: str) -> SaveResult:
        return _run_sync(self._call("undelete", id_or_alias))

    def promote(self, id_or_alias: str) -> SaveResult:
        return _run_sync(self._call("promote", id_or_alias))

    def update(self, id_or_alias: str, options: PackageVersionUpdateOptions) -> SaveResult:
        return _run_sync(self._call("update", id_or_alias, options))
