"""
Tests for ej_atlas.paths module.

Tests cover:
- Project root detection via .project-root marker
- Path resolution relative to project root
- Paths singleton canonical path properties
"""

from pathlib import Path

import pytest

from ej_atlas.paths import get_project_root, get_path, paths, ensure_dir


class TestGetProjectRoot:
    """Tests for get_project_root() function."""

    def test_finds_project_root(self):
        """Should find the project root containing .project-root."""
        root = get_project_root()
        assert root.exists()
        assert (root / ".project-root").exists()

    def test_is_absolute_path(self):
        root = get_project_root()
        assert isinstance(root, Path)
        assert root.is_absolute()

    def test_result_is_cached(self):
        """Should return the same object on repeated calls (caching)."""
        assert get_project_root() is get_project_root()


class TestGetPath:

    def test_resolves_multiple_parts(self):
        path = get_path("reports", "maps")
        assert path == get_project_root() / "reports" / "maps"

    def test_returns_absolute_path(self):
        assert get_path("configs").is_absolute()


class TestPathsSingleton:
    """Tests for the Paths singleton instance."""

    def test_root_property(self):
        assert paths.root == get_project_root()

    def test_config_paths(self):
        assert paths.configs == get_project_root() / "configs"
        assert paths.params_yml == get_project_root() / "configs" / "params.yml"

    def test_logs_path(self):
        assert paths.logs == get_project_root() / "logs"

    def test_report_paths(self):
        assert paths.reports == get_project_root() / "reports"
        assert paths.reports_tables == paths.reports / "tables"
        assert paths.reports_maps == paths.reports / "maps"


class TestEnsureDir:
    """Tests for ensure_dir() function."""

    def test_creates_nested_directories(self, tmp_path):
        nested = tmp_path / "level1" / "level2" / "level3"
        assert not nested.exists()

        result = ensure_dir(nested)

        assert nested.is_dir()
        assert result == nested

    def test_returns_existing_directory(self, tmp_path):
        existing = tmp_path / "existing"
        existing.mkdir()
        assert ensure_dir(existing) == existing

    def test_accepts_string_path(self, tmp_path):
        result = ensure_dir(str(tmp_path / "string_path"))
        assert isinstance(result, Path)
        assert result.exists()


class TestPathsExist:
    """Tests that canonical paths exist in the project."""

    def test_configs_directory_exists(self):
        assert paths.configs.exists()

    def test_params_yml_exists(self):
        assert paths.params_yml.exists()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
