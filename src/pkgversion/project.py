"""Project manifest (sfdx-project.json) handle.

The manifest is a JSON document owned by the calling project. This module
reads it, exposes its top-level sections, and applies changes as a single
transaction: a patch is computed against a copy of the contents, written to
disk atomically, and only then becomes the in-memory state.
"""

from __future__ import annotations

import copy
import json
import logging
import os
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Any

from pydantic import BaseModel, Field

from .constants import PROJECT_FILE_NAME
from .exceptions import ManifestError, ManifestNotFoundError, ManifestParseError

logger = logging.getLogger(__name__)


class ManifestPatch(BaseModel):
    """A set of changes to apply to a project manifest in one write."""

    package_aliases: dict[str, str] = Field(
        default_factory=dict, description="Aliases to add or overwrite"
    )
    package_id: str | None = Field(None, description="Package whose directory entry changes")
    directory_fields: dict[str, Any] = Field(
        default_factory=dict, description="Fields to set on the matching directory entry"
    )


class ProjectManifest:
    """In-memory handle over a project's manifest file."""

    def __init__(self, path: Path, contents: dict[str, Any] | None = None) -> None:
        self.path = path
        self._contents: dict[str, Any] = contents if contents is not None else {}

    @classmethod
    def load(cls, path: Path | str) -> ProjectManifest:
        """Load a manifest from a file or from a project directory.

        Raises:
            ManifestNotFoundError: If the file doesn't exist.
            ManifestParseError: If the file is not a JSON object.
        """
        manifest_path = Path(path)
        if manifest_path.is_dir():
            manifest_path = manifest_path / PROJECT_FILE_NAME

        if not manifest_path.exists():
            raise ManifestNotFoundError(f"Project manifest not found: {manifest_path}")

        try:
            data = json.loads(manifest_path.read_text())
        except json.JSONDecodeError as e:
            raise ManifestParseError(f"Invalid JSON in {manifest_path}: {e}") from e
        except OSError as e:
            raise ManifestError(f"Failed to read project manifest: {e}") from e

        if not isinstance(data, dict):
            raise ManifestParseError(f"{manifest_path} must contain a JSON object")

        return cls(manifest_path, data)

    @property
    def contents(self) -> dict[str, Any]:
        """A copy of the whole document."""
        return copy.deepcopy(self._contents)

    def get(self, key: str, default: Any = None) -> Any:
        return copy.deepcopy(self._contents.get(key, default))

    def set(self, key: str, value: Any) -> None:
        self._contents[key] = value

    @property
    def package_aliases(self) -> dict[str, str]:
        return self.get("packageAliases") or {}

    @property
    def package_directories(self) -> list[dict[str, Any]]:
        return self.get("packageDirectories") or []

    def resolve_alias(self, id_or_alias: str) -> str:
        """Return the id an alias points to, or the input unchanged."""
        return self.package_aliases.get(id_or_alias, id_or_alias)

    def aliases_for_id(self, record_id: str) -> list[str]:
        """All aliases whose value is the given id, in document order."""
        return [alias for alias, value in self.package_aliases.items() if value == record_id]

    def find_package_directory(self, package_id: str) -> dict[str, Any] | None:
        """Find the directory entry for a package id.

        An entry matches when its ``id`` equals the package id, or when its
        ``package`` names an alias of that id.
        """
        for directory in self.package_directories:
            if _directory_matches(directory, package_id, self.package_aliases):
                return directory
        return None

    def apply_patch(self, patch: ManifestPatch) -> None:
        """Apply a patch and persist the result.

        The in-memory document is replaced only after the write succeeds.

        Raises:
            ManifestError: If the file cannot be written.
        """
        contents = copy.deepcopy(self._contents)
        aliases = contents.get("packageAliases") or {}

        if patch.package_id and patch.directory_fields and "packageDirectories" in contents:
            contents["packageDirectories"] = [
                {**directory, **patch.directory_fields}
                if _directory_matches(directory, patch.package_id, aliases)
                else directory
                for directory in contents["packageDirectories"] or []
            ]

        if patch.package_aliases:
            aliases.update(patch.package_aliases)
            contents["packageAliases"] = aliases

        _write_json(self.path, contents)
        self._contents = contents
        logger.info(f"Updated project manifest {self.path}")

    def write(self) -> Path:
        """Persist the current document.

        Raises:
            ManifestError: If the file cannot be written.
        """
        _write_json(self.path, self._contents)
        return self.path


def _directory_matches(directory: dict[str, Any], package_id: str, aliases: dict[str, str]) -> bool:
    if directory.get("id") == package_id:
        return True
    package = directory.get("package")
    return bool(package) and aliases.get(package) == package_id


def _write_json(path: Path, data: dict[str, Any]) -> None:
    """Write JSON atomically through a temporary file in the same directory."""
    tmp_path: Path | None = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            delete=False,
            suffix=".tmp",
            encoding="utf-8",
        ) as f:
            tmp_path = Path(f.name)
            json.dump(data, f, indent=2)
            f.write("\n")
        os.replace(tmp_path, path)
    except OSError as e:
        if tmp_path is not None and tmp_path.exists():
            tmp_path.unlink()
        raise ManifestError(f"Failed to write project manifest: {e}") from e
