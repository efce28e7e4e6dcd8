"""Tests for application paths."""

from gh_rivet.models import ConfigSource
from gh_rivet.paths import AppPaths, find_project_root, sanitize_for_filename


class TestAppPaths:
    """Tests for XDG discovery and config tiers."""

    def test_xdg_variables(self, tmp_path):
        paths = AppPaths.discover(environ={
            "XDG_CONFIG_HOME": str(tmp_path / "c"),
            "XDG_STATE_HOME": str(tmp_path / "s"),
            "XDG_CACHE_HOME": str(tmp_path / "k"),
        }, home=tmp_path)
        assert paths.user_config_file == tmp_path / "c" / "rivet" / "config.yaml"
        assert paths.user_state_dir == tmp_path / "s" / "rivet"
        assert paths.user_cache_dir == tmp_path / "k" / "rivet"

    def test_home_fallbacks(self, tmp_path):
        paths = AppPaths.discover(environ={}, home=tmp_path)
        assert paths.user_config_dir == tmp_path / ".config" / "rivet"
        assert paths.user_state_dir == tmp_path / ".local" / "state" / "rivet"

    def test_project_tiers(self, tmp_path):
        paths = AppPaths.discover(project_root=tmp_path, environ={}, home=tmp_path / "home")
        assert paths.repo_default_config_path == tmp_path / ".github" / ".rivet.yaml"
        assert paths.project_user_config_path == tmp_path / ".git" / "rivet" / "config.yaml"
        assert paths.config_source(paths.project_user_config_path) == ConfigSource.PROJECT_CONFIG

    def test_config_paths_only_existing_in_order(self, tmp_path):
        paths = AppPaths.discover(project_root=tmp_path, environ={}, home=tmp_path / "home")
        for path in (paths.project_user_config_path, paths.repo_default_config_path):
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text("")
        assert paths.config_paths() == [paths.repo_default_config_path, paths.project_user_config_path]

    def test_no_project(self, tmp_path):
        paths = AppPaths.discover(environ={}, home=tmp_path)
        assert paths.repo_default_config_path is None
        assert paths.config_paths() == []

    def test_state_file_without_repository(self, tmp_path):
        paths = AppPaths.discover(environ={}, home=tmp_path)
        assert paths.user_state_file("").name == "state.yaml"

    def test_ensure_dirs(self, tmp_path):
        paths = AppPaths.discover(project_root=tmp_path, environ={}, home=tmp_path / "home")
        paths.ensure_dirs()
        assert paths.user_config_dir.is_dir()
        assert paths.user_state_dir.is_dir()
        assert (tmp_path / ".git" / "rivet").is_dir()


def test_sanitize_for_filename():
    assert sanitize_for_filename('a/b\\c:d*e?f"g<h>i|j') == "a_b_c_d_e_f_g_h_i_j"


def test_find_project_root(tmp_path):
    (tmp_path / ".git").mkdir()
    nested = tmp_path / "a" / "b"
    nested.mkdir(parents=True)
    assert find_project_root(nested) == tmp_path.resolve()
