"""Tests for taskmgr.lib.config module."""

import pytest
from pathlib import Path
from unittest.mock import patch

from taskmgr.lib.config import (
    ConfigError,
    clear_current_project,
    default_project_code,
    get_current_project,
    get_home,
    init_project,
    list_projects,
    load_project_config,
    resolve_project,
    set_current_project,
)


class TestDefaultProjectCode:
    """Test code derivation from project names."""

    @pytest.mark.parametrize("name,code", [
        ("darwin-flow", "DF"),
        ("my_big_project", "MBP"),
        ("tasks", "TA"),
        ("x", "X"),
        ("-", "TM"),
    ])
    def test_derivation(self, name, code):
        assert default_project_code(name) == code


class TestLoadProjectConfig:
    """Test load_project_config with a mocked env reader."""

    @patch("taskmgr.lib.config.envparse.load_env")
    def test_explicit_code(self, mock_load_env):
        mock_load_env.return_value = {"PROJECT_NAME": "darwin", "PROJECT_CODE": "DW"}
        config = load_project_config(Path("/fake/project"))
        assert config.code == "DW"
        assert config.db_path == Path("/fake/project/roadmap.db")

    @patch("taskmgr.lib.config.envparse.load_env")
    def test_code_derived_when_missing(self, mock_load_env):
        mock_load_env.return_value = {"PROJECT_NAME": "darwin-flow"}
        config = load_project_config(Path("/fake/project"))
        assert config.code == "DF"

    @patch("taskmgr.lib.config.envparse.load_env")
    def test_custom_db_file(self, mock_load_env):
        mock_load_env.return_value = {"PROJECT_NAME": "p", "DB_FILE": "plan.db"}
        config = load_project_config(Path("/fake/project"))
        assert config.db_path.name == "plan.db"

    @patch("taskmgr.lib.config.envparse.load_env")
    def test_invalid_code_falls_back_with_warning(self, mock_load_env, caplog):
        mock_load_env.return_value = {"PROJECT_NAME": "p", "PROJECT_CODE": "dw-1"}
        config = load_project_config(Path("/fake/project"))
        assert config.code == "TM"
        assert "Invalid PROJECT_CODE 'dw-1'" in caplog.text

    @patch("taskmgr.lib.config.envparse.load_env")
    def test_missing_name(self, mock_load_env):
        mock_load_env.return_value = {"PROJECT_CODE": "DW"}
        with pytest.raises(ConfigError, match="PROJECT_NAME missing"):
            load_project_config(Path("/fake/project"))

    @patch("taskmgr.lib.config.envparse.load_env")
    def test_unsafe_env_is_config_error(self, mock_load_env):
        mock_load_env.side_effect = ValueError("Line 1: Forbidden pattern in value")
        with pytest.raises(ConfigError, match="Invalid project.env"):
            load_project_config(Path("/fake/project"))


class TestInitProject:
    """Test project creation on disk."""

    def test_creates_env(self, tmp_path):
        config = init_project(tmp_path, "darwin", "DW")
        assert (tmp_path / "projects" / "darwin" / "project.env").exists()
        assert config.name == "darwin"
        assert config.code == "DW"

    def test_code_defaults_from_name(self, tmp_path):
        assert init_project(tmp_path, "darwin-flow").code == "DF"

    def test_already_exists(self, tmp_path):
        init_project(tmp_path, "darwin")
        with pytest.raises(ConfigError, match="already exists"):
            init_project(tmp_path, "darwin")

    @pytest.mark.parametrize("name", ["has space", "a/b", ""])
    def test_invalid_name(self, tmp_path, name):
        with pytest.raises(ConfigError, match="Invalid project name"):
            init_project(tmp_path, name)

    def test_invalid_code(self, tmp_path):
        with pytest.raises(ConfigError, match="Invalid project code"):
            init_project(tmp_path, "darwin", "dw")

    def test_list_projects_sorted(self, tmp_path):
        init_project(tmp_path, "zeta")
        init_project(tmp_path, "alpha")
        assert [p.name for p in list_projects(tmp_path)] == ["alpha", "zeta"]

    def test_list_skips_broken(self, tmp_path, caplog):
        init_project(tmp_path, "good")
        broken = tmp_path / "projects" / "broken"
        broken.mkdir(parents=True)
        (broken / "project.env").write_text("PROJECT_CODE=XX\n")
        assert [p.name for p in list_projects(tmp_path)] == ["good"]
        assert "Skipping project broken" in caplog.text

    def test_list_without_projects_dir(self, tmp_path):
        assert list_projects(tmp_path) == []


class TestCurrentProject:
    """Test the current-project context file."""

    def test_set_and_get(self, tmp_path):
        init_project(tmp_path, "darwin")
        set_current_project(tmp_path, "darwin")
        assert get_current_project(tmp_path) == "darwin"

    def test_stale_context_cleared(self, tmp_path):
        set_current_project(tmp_path, "gone")
        assert get_current_project(tmp_path) is None
        assert not (tmp_path / "config" / "current_project").exists()

    def test_clear(self, tmp_path):
        init_project(tmp_path, "darwin")
        set_current_project(tmp_path, "darwin")
        clear_current_project(tmp_path)
        assert get_current_project(tmp_path) is None

    def test_home_from_env(self, tmp_path, monkeypatch):
        monkeypatch.setenv("TM_HOME", str(tmp_path))
        assert get_home() == tmp_path


class TestResolveProject:
    """Test which project a command runs against."""

    def test_named(self, tmp_path):
        init_project(tmp_path, "a")
        init_project(tmp_path, "b")
        assert resolve_project(tmp_path, "b").name == "b"

    def test_named_missing(self, tmp_path):
        with pytest.raises(ConfigError, match="Project 'nope' not found"):
            resolve_project(tmp_path, "nope")

    def test_current_context(self, tmp_path):
        init_project(tmp_path, "a")
        init_project(tmp_path, "b")
        set_current_project(tmp_path, "a")
        assert resolve_project(tmp_path).name == "a"

    def test_single_project(self, tmp_path):
        init_project(tmp_path, "only")
        assert resolve_project(tmp_path).name == "only"

    def test_none_configured(self, tmp_path):
        with pytest.raises(ConfigError, match="No projects configured"):
            resolve_project(tmp_path)

    def test_ambiguous(self, tmp_path):
        init_project(tmp_path, "a")
        init_project(tmp_path, "b")
        with pytest.raises(ConfigError, match="Multiple projects found"):
            resolve_project(tmp_path)
