#!/usr/bin/env python3
"""
Tests for fallback installers.
"""

import os
import sys
from pathlib import Path
from unittest.mock import patch

import pytest
from git.exc import GitCommandError, GitCommandNotFound

from dotstrap.core.errors import ManifestError
from dotstrap.core.installers import (
    ScriptInstaller,
    SourceBuildInstaller,
    create_installer,
)

from .fakes import FakeRunner

STARSHIP_URL = "https://starship.rs/install.sh"
FZF_REPO = "https://github.com/junegunn/fzf.git"


@pytest.fixture
def script_dir(tmp_path):
    """Pin the download directory so command lines are predictable."""
    directory = tmp_path / "download"
    directory.mkdir()
    with patch('dotstrap.core.installers.tempfile.TemporaryDirectory') as mock_tmp:
        mock_tmp.return_value.__enter__.return_value = str(directory)
        yield directory


class TestScriptInstaller:
    """Test ScriptInstaller."""

    def make(self, runner, local_bin="/home/u/.local/bin"):
        return ScriptInstaller(
            "starship", runner, STARSHIP_URL,
            args=["-y"], retry_args=["-y", "-b", local_bin],
        )

    def test_download_then_run(self, script_dir):
        runner = FakeRunner()
        script = str(script_dir / "install.sh")

        result = self.make(runner).install()

        assert result.success is True
        assert runner.commands == [
            ("curl", "-fsSL", "-o", script, STARSHIP_URL),
            ("sh", script, "-y"),
        ]

    def test_retries_with_local_target(self, script_dir):
        runner = FakeRunner()
        script = str(script_dir / "install.sh")
        runner.respond(("sh", script, "-y"), returncode=1)

        result = self.make(runner).install()

        assert result.success is True
        assert runner.commands[-1] == ("sh", script, "-y", "-b", "/home/u/.local/bin")

    def test_both_attempts_fail(self, script_dir):
        runner = FakeRunner()
        script = str(script_dir / "install.sh")
        runner.respond(("sh", script, "-y"), returncode=1)
        runner.respond(("sh", script, "-y", "-b", "/home/u/.local/bin"), returncode=2)

        result = self.make(runner).install()

        assert result.success is False
        assert "2" in result.message

    def test_no_retry_without_retry_args(self, script_dir):
        runner = FakeRunner()
        script = str(script_dir / "install.sh")
        runner.respond(("sh", script), returncode=1)

        result = ScriptInstaller("tool", runner, STARSHIP_URL).install()

        assert result.success is False
        assert len(runner.commands) == 2

    def test_download_failure(self, script_dir):
        runner = FakeRunner()
        script = str(script_dir / "install.sh")
        runner.respond(("curl", "-fsSL", "-o", script, STARSHIP_URL),
                       returncode=22, stderr="curl: (22) 404")

        result = self.make(runner).install()

        assert result.success is False
        assert "404" in result.message
        assert len(runner.commands) == 1


class TestSourceBuildInstaller:
    """Test SourceBuildInstaller."""

    @pytest.fixture
    def paths(self, tmp_path):
        return tmp_path / "data" / "fzf", tmp_path / "bin" / "fzf"

    def make(self, runner, paths):
        checkout, link = paths
        return SourceBuildInstaller(
            "fzf", runner, FZF_REPO,
            checkout_dir=checkout,
            build_command=["./install", "--bin"],
            binary="bin/fzf",
            link_path=link,
        )

    @staticmethod
    def fake_clone(url, path, depth=None):
        path = Path(path)
        assert not path.exists()
        (path / "bin").mkdir(parents=True)
        (path / "install").write_text("#!/bin/sh\n")
        (path / "bin" / "fzf").write_text("binary")

    @patch('git.Repo.clone_from')
    def test_clone_build_and_link(self, mock_clone, paths):
        mock_clone.side_effect = self.fake_clone
        checkout, link = paths
        runner = FakeRunner()

        result = self.make(runner, paths).install()

        assert result.success is True
        assert result.binary_path == link
        mock_clone.assert_called_once_with(FZF_REPO, checkout, depth=1)
        assert runner.commands == [(str(checkout / "install"), "--bin")]
        assert link.is_symlink()
        assert Path(os.readlink(link)) == checkout / "bin" / "fzf"

    @patch('git.Repo.clone_from')
    def test_previous_checkout_is_replaced(self, mock_clone, paths):
        mock_clone.side_effect = self.fake_clone
        checkout, link = paths
        checkout.mkdir(parents=True)
        (checkout / "stale").write_text("old")
        link.parent.mkdir(parents=True)
        os.symlink("/nonexistent/fzf", link)

        result = self.make(FakeRunner(), paths).install()

        assert result.success is True
        assert not (checkout / "stale").exists()
        assert Path(os.readlink(link)) == checkout / "bin" / "fzf"

    @patch('git.Repo.clone_from')
    def test_clone_failure(self, mock_clone, paths):
        mock_clone.side_effect = GitCommandError("clone", 128)
        runner = FakeRunner()

        result = self.make(runner, paths).install()

        assert result.success is False
        assert runner.commands == []

    @patch('git.Repo.clone_from')
    def test_missing_git_executable(self, mock_clone, paths):
        """A git binary that cannot be run is a failed install, not a crash."""
        mock_clone.side_effect = GitCommandNotFound("git", "No such file or directory")
        runner = FakeRunner()

        result = self.make(runner, paths).install()

        assert result.success is False
        assert "Failed to clone" in result.message
        assert runner.commands == []

    def test_gitpython_unavailable(self, paths):
        runner = FakeRunner()

        with patch.dict(sys.modules, {'git': None}):
            result = self.make(runner, paths).install()

        assert result.success is False
        assert "git" in result.message
        assert runner.commands == []

    @patch('git.Repo.clone_from')
    def test_build_failure(self, mock_clone, paths):
        mock_clone.side_effect = self.fake_clone
        checkout, link = paths
        runner = FakeRunner()
        runner.respond((str(checkout / "install"), "--bin"), returncode=1)

        result = self.make(runner, paths).install()

        assert result.success is False
        assert not link.exists()

    @patch('git.Repo.clone_from')
    def test_missing_binary(self, mock_clone, paths):
        mock_clone.side_effect = lambda url, path, depth=None: Path(path).mkdir(parents=True)

        result = self.make(FakeRunner(), paths).install()

        assert result.success is False
        assert "bin/fzf" in result.message


class TestCreateInstaller:
    """Test building installers from manifest entries."""

    def test_script(self):
        installer = create_installer(
            "starship", {'type': 'script', 'url': STARSHIP_URL, 'args': ['-y']},
            FakeRunner(), Path("/home/u/.local/bin"),
        )
        assert isinstance(installer, ScriptInstaller)
        assert installer.args == ("-y",)
        assert installer.retry_args == ()

    def test_source_link_defaults_to_private_bin(self):
        installer = create_installer(
            "fzf",
            {
                'type': 'source',
                'repository': FZF_REPO,
                'checkout_dir': '/home/u/.local/share/fzf',
                'build_command': ['./install', '--bin'],
                'binary': 'bin/fzf',
            },
            FakeRunner(), Path("/home/u/.local/bin"),
        )
        assert isinstance(installer, SourceBuildInstaller)
        assert installer.link_path == Path("/home/u/.local/bin/fzf")
        assert installer.describe() == "source installer for fzf"

    def test_unknown_type(self):
        with pytest.raises(ManifestError, match="Unknown fallback type"):
            create_installer("fzf", {'type': 'rpm'}, FakeRunner(), Path("/tmp"))

    def test_missing_field(self):
        with pytest.raises(ManifestError, match="url"):
            create_installer("starship", {'type': 'script'}, FakeRunner(), Path("/tmp"))
