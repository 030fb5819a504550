#!/usr/bin/env python3
"""Tests for target enumeration."""

import zipfile
from pathlib import Path
from unittest.mock import patch

import pytest

from classweaver.core.errors import EnumerationError
from classweaver.pipeline.enumerator import (
    ArchiveEntry,
    iter_archive_entries,
    iter_directory_candidates,
)


class TestDirectoryCandidates:
    """Tests for iter_directory_candidates."""

    def test_finds_every_class_once(self, class_dir: Path):
        """Test each class file is yielded exactly once."""
        names = [c.class_name for c in iter_directory_candidates(class_dir)]
        assert sorted(names) == ["other.Foo", "pkg.A", "pkg.sub.C"]
        assert len(names) == len(set(names))

    def test_skips_non_class_files(self, class_dir: Path):
        """Test resources are never yielded."""
        paths = [c.relative_path for c in iter_directory_candidates(class_dir)]
        assert "pkg/B.txt" not in paths

    def test_sorted_depth_first(self, class_dir: Path):
        """Test deterministic traversal order."""
        paths = [c.relative_path for c in iter_directory_candidates(class_dir)]
        assert paths == ["other/Foo.class", "pkg/A.class", "pkg/sub/C.class"]

    def test_candidate_fields(self, class_dir: Path):
        """Test candidate carries name, relative path and file path."""
        candidate = next(c for c in iter_directory_candidates(class_dir) if c.class_name == "pkg.A")
        assert candidate.relative_path == "pkg/A.class"
        assert candidate.file_path == class_dir / "pkg" / "A.class"

    def test_empty_directory(self, tmp_path: Path):
        """Test an empty tree yields nothing."""
        assert list(iter_directory_candidates(tmp_path)) == []

    def test_root_must_be_directory(self, sample_jar: Path):
        """Test a file root is rejected."""
        with pytest.raises(EnumerationError, match="Not a directory"):
            list(iter_directory_candidates(sample_jar))

    def test_unlistable_directory(self, class_dir: Path):
        """Test a listing failure is an error, not an empty directory."""
        with patch(
            "classweaver.pipeline.enumerator.os.scandir", side_effect=PermissionError(13, "denied")
        ):
            with pytest.raises(EnumerationError, match="Cannot list directory, I/O error"):
                list(iter_directory_candidates(class_dir))


class TestArchiveEntries:
    """Tests for archive entry classification."""

    def test_classification(self, multi_class_jar: Path):
        """Test manifest, directory and class detection."""
        with zipfile.ZipFile(multi_class_jar) as archive:
            entries = {e.name: e for e in iter_archive_entries(archive)}

        assert entries["META-INF/MANIFEST.MF"].is_manifest
        assert entries["META-INF/"].is_directory
        assert entries["pkg/A.class"].is_class
        assert not entries["pkg/notes.txt"].is_class
        assert not entries["pkg/notes.txt"].is_manifest
        assert not entries["pkg/model/"].is_class

    def test_native_order(self, multi_class_jar: Path):
        """Test entries come in archive order."""
        with zipfile.ZipFile(multi_class_jar) as archive:
            names = [e.name for e in iter_archive_entries(archive)]
            assert names == [i.filename for i in archive.infolist()]

    def test_manifest_case_insensitive(self):
        """Test manifest detection ignores case."""
        assert ArchiveEntry(zipfile.ZipInfo("meta-inf/manifest.mf")).is_manifest
