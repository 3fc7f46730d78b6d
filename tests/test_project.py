"""Tests for the project manifest handle."""

from __future__ import annotations

import json

import pytest

from pkgversion.exceptions import ManifestError, ManifestNotFoundError, ManifestParseError
from pkgversion.project import ManifestPatch, ProjectManifest

from .conftest import OTHER_PACKAGE_ID, PACKAGE_ID, make_project_dict


class TestLoad:
    """Tests for ProjectManifest.load()."""

    def test_load_from_file(self, project_path):
        """Test loading a manifest file."""
        project = ProjectManifest.load(project_path)

        assert project.path == project_path
        assert project.contents == make_project_dict()

    def test_load_from_directory(self, project_path):
        """Test that a directory resolves to its sfdx-project.json."""
        project = ProjectManifest.load(project_path.parent)

        assert project.path == project_path

    def test_missing_file(self, tmp_path):
        """Test that a missing manifest raises ManifestNotFoundError."""
        with pytest.raises(ManifestNotFoundError):
            ProjectManifest.load(tmp_path)

    @pytest.mark.parametrize("text", ["{not json", "[1, 2]"])
    def test_invalid_content(self, tmp_path, text):
        """Test that invalid JSON or a non-object raises ManifestParseError."""
        path = tmp_path / "sfdx-project.json"
        path.write_text(text)

        with pytest.raises(ManifestParseError):
            ProjectManifest.load(path)


class TestAccessors:
    """Tests for alias and directory lookups."""

    def test_resolve_alias(self, project):
        assert project.resolve_alias("my-pkg") == PACKAGE_ID
        assert project.resolve_alias("04t000000000009") == "04t000000000009"

    def test_aliases_for_id(self, project):
        project.set("packageAliases", {"a": PACKAGE_ID, "b": OTHER_PACKAGE_ID, "c": PACKAGE_ID})

        assert project.aliases_for_id(PACKAGE_ID) == ["a", "c"]
        assert project.aliases_for_id("0Ho000000000099") == []

    def test_find_package_directory(self, project):
        assert project.find_package_directory(PACKAGE_ID)["path"] == "force-app"
        assert project.find_package_directory("0Ho000000000099") is None

    def test_contents_is_a_copy(self, project):
        """Test that mutating the returned contents leaves the manifest alone."""
        contents = project.contents
        contents["packageAliases"]["x"] = "y"

        assert "x" not in project.package_aliases


class TestApplyPatch:
    """Tests for ProjectManifest.apply_patch()."""

    def test_patch_written_and_kept(self, project, project_path):
        """Test that a patch is persisted and preserves unrelated keys."""
        project.apply_patch(
            ManifestPatch(
                package_aliases={"my-pkg@1.2.3-7": "04t000000000001AAA"},
                package_id=PACKAGE_ID,
                directory_fields={"versionNumber": "1.2.3.7"},
            )
        )

        saved = json.loads(project_path.read_text())
        assert saved == project.contents
        assert saved["sourceApiVersion"] == "59.0"
        assert saved["packageAliases"]["my-pkg@1.2.3-7"] == "04t000000000001AAA"
        assert saved["packageDirectories"][1]["versionNumber"] == "1.2.3.7"
        assert saved["packageDirectories"][0]["versionNumber"] == "0.1.0.NEXT"
        assert not list(project_path.parent.glob("*.tmp"))

    def test_alias_overwritten(self, project):
        """Test that an existing alias is replaced."""
        project.apply_patch(ManifestPatch(package_aliases={"my-pkg": "0Ho000000000099"}))

        assert project.package_aliases["my-pkg"] == "0Ho000000000099"

    def test_aliases_created_when_missing(self, tmp_path):
        """Test that the alias section is created in a manifest without one."""
        project = ProjectManifest(tmp_path / "sfdx-project.json", {"packageDirectories": []})

        project.apply_patch(ManifestPatch(package_aliases={"pkg@1.0.0-1": "04t000000000001AAA"}))

        assert project.package_aliases == {"pkg@1.0.0-1": "04t000000000001AAA"}
        assert (tmp_path / "sfdx-project.json").exists()

    def test_directories_not_added_when_missing(self, tmp_path):
        """Test that a directory patch does not create a packageDirectories section."""
        path = tmp_path / "sfdx-project.json"
        project = ProjectManifest(path, {"packageAliases": {"my-pkg": PACKAGE_ID}})

        project.apply_patch(
            ManifestPatch(package_id=PACKAGE_ID, directory_fields={"versionNumber": "1.2.3.7"})
        )

        assert "packageDirectories" not in json.loads(path.read_text())
        assert "packageDirectories" not in project.contents

    def test_write_failure_keeps_contents(self, tmp_path):
        """Test that a failed write raises and leaves the document unchanged."""
        blocker = tmp_path / "blocker"
        blocker.write_text("")
        project = ProjectManifest(blocker / "sfdx-project.json", make_project_dict())

        with pytest.raises(ManifestError):
            project.apply_patch(ManifestPatch(package_aliases={"a": "b"}))

        assert project.contents == make_project_dict()
