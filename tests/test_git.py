"""Tests for repository detection."""

import pytest

from gh_rivet.git import (
    RepositoryFormatError,
    detect_repository,
    extract_repo_from_url,
    parse_origin_url,
    validate_repository_format,
)

GIT_CONFIG = """\
[core]
\trepositoryformatversion = 0
[remote "upstream"]
\turl = https://github.com/other/fork.git
[remote "origin"]
\turl = git@github.com:acme/platform.git
\tfetch = +refs/heads/*:refs/remotes/origin/*
"""


class TestExtractRepo:
    """Tests for remote URL parsing."""

    @pytest.mark.parametrize("url", [
        "https://github.com/acme/platform.git",
        "https://github.com/acme/platform",
        "https://github.com/acme/platform/",
        "git@github.com:acme/platform.git",
        "http://github.com/acme/platform",
    ])
    def test_github_urls(self, url):
        assert extract_repo_from_url(url) == "acme/platform"

    def test_other_hosts(self):
        assert extract_repo_from_url("git@gitlab.com:acme/platform.git") == ""

    def test_extra_segments(self):
        assert extract_repo_from_url("https://github.com/acme/platform/tree/main") == ""


class TestGitConfig:
    """Tests for reading the origin remote."""

    def test_origin_url(self):
        assert parse_origin_url(GIT_CONFIG) == "git@github.com:acme/platform.git"

    def test_no_origin(self):
        assert parse_origin_url("[core]\n\tbare = false\n") == ""

    def test_detect_from_subdirectory(self, tmp_path):
        (tmp_path / ".git").mkdir()
        (tmp_path / ".git" / "config").write_text(GIT_CONFIG)
        nested = tmp_path / "src" / "pkg"
        nested.mkdir(parents=True)
        assert detect_repository(nested) == "acme/platform"

    def test_detect_without_config(self, tmp_path):
        (tmp_path / ".git").mkdir()
        assert detect_repository(tmp_path) is None


class TestValidateFormat:
    """Tests for owner/repo validation."""

    def test_valid(self):
        validate_repository_format("acme/my-repo.js")

    @pytest.mark.parametrize("repo", ["", "acme", "acme/platform/extra", "acme/plat form"])
    def test_invalid(self, repo):
        with pytest.raises(RepositoryFormatError, match="owner/repo"):
            validate_repository_format(repo)
