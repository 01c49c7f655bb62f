#!/usr/bin/env python3
"""
Tests for the command-line interface.
"""

import os
import subprocess
import sys
from pathlib import Path
from unittest.mock import patch

import pytest
import yaml
from click.testing import CliRunner

from dotstrap.cli import cli

from .fakes import FakeRunner

XDG_UNSET = {
    'XDG_CONFIG_HOME': None,
    'XDG_CACHE_HOME': None,
    'XDG_DATA_HOME': None,
    'XDG_STATE_HOME': None,
}


@pytest.fixture
def home(tmp_path):
    path = tmp_path / "home"
    path.mkdir()
    return path


@pytest.fixture
def dotfiles(tmp_path):
    root = tmp_path / "dotfiles"
    root.mkdir()
    (root / ".bashrc").write_text("# managed\n")
    (root / "dotstrap.yaml").write_text(yaml.safe_dump({
        'tools': [{
            'command': 'fzf',
            'minimum': '0.60',
            'fallback': {'type': 'script', 'url': 'https://example.invalid/install.sh'},
        }],
        'links': [{'source': '.bashrc', 'destination': '~/.bashrc'}],
    }))
    return root


def invoke(args, home, tmp_path):
    env = dict(XDG_UNSET, HOME=str(home))
    return CliRunner().invoke(
        cli, ['--log-file', str(tmp_path / "dotstrap.log")] + args, env=env
    )


class TestCli:
    """Test CLI commands."""

    def test_help(self):
        result = CliRunner().invoke(cli, ['--help'])
        assert result.exit_code == 0
        for command in ('install', 'link', 'check', 'detect'):
            assert command in result.output

    def test_link(self, home, dotfiles, tmp_path):
        result = invoke(['--dotfiles', str(dotfiles), 'link'], home, tmp_path)

        assert result.exit_code == 0, result.output
        assert (home / ".bashrc").is_symlink()
        assert (home / ".config").is_dir()

    def test_link_twice_reports_no_changes(self, home, dotfiles, tmp_path):
        invoke(['--dotfiles', str(dotfiles), 'link'], home, tmp_path)
        result = invoke(['--dotfiles', str(dotfiles), 'link'], home, tmp_path)

        assert result.exit_code == 0
        assert "already up to date" in result.output

    @patch('dotstrap.cli.CommandRunner')
    def test_detect(self, mock_runner, home, tmp_path):
        mock_runner.return_value = FakeRunner({'sudo': '/usr/bin/sudo', 'dnf': '/usr/bin/dnf'})

        result = invoke(['detect'], home, tmp_path)

        assert result.exit_code == 0, result.output
        assert "dnf" in result.output

    @patch('dotstrap.cli.CommandRunner')
    def test_detect_unsupported(self, mock_runner, home, tmp_path):
        mock_runner.return_value = FakeRunner()

        result = invoke(['detect'], home, tmp_path)

        assert result.exit_code == 1

    @patch('dotstrap.cli.CommandRunner')
    def test_check(self, mock_runner, home, dotfiles, tmp_path):
        runner = FakeRunner({'sudo': '/usr/bin/sudo', 'apt-get': '/usr/bin/apt-get',
                             'fzf': '/usr/bin/fzf'})
        runner.respond(('/usr/bin/fzf', '--version'), stdout="0.42\n")
        runner.respond(('apt-cache', 'policy', 'fzf'), stdout="  Candidate: 0.44.1-1\n")
        mock_runner.return_value = runner

        result = invoke(['--dotfiles', str(dotfiles), 'check'], home, tmp_path)

        assert result.exit_code == 0, result.output
        assert "0.42" in result.output
        assert "needs update" in result.output
        assert not any('install' in args for args in runner.commands)

    @patch('dotstrap.cli.CommandRunner')
    def test_install_reports_failed_stage(self, mock_runner, home, dotfiles, tmp_path):
        mock_runner.return_value = FakeRunner()

        result = invoke(['--dotfiles', str(dotfiles), 'install'], home, tmp_path)

        assert result.exit_code == 1
        assert "Environment detection failed" in result.output
        assert not (home / ".bashrc").exists()

    def test_missing_manifest(self, home, dotfiles, tmp_path):
        result = invoke(
            ['--dotfiles', str(dotfiles), '--manifest', str(tmp_path / "nope.yaml"), 'link'],
            home, tmp_path,
        )

        assert result.exit_code == 1
        assert "Failed to load manifest" in result.output


class TestImport:
    """Test that the CLI loads on a host that does not have git yet."""

    def test_cli_imports_without_git(self, tmp_path):
        empty_bin = tmp_path / "bin"
        empty_bin.mkdir()
        src_dir = Path(__file__).resolve().parent.parent / 'src'
        env = {
            key: value for key, value in os.environ.items()
            if not key.startswith('GIT_PYTHON_')
        }
        env.update(PATH=str(empty_bin), PYTHONPATH=str(src_dir), HOME=str(tmp_path))

        result = subprocess.run(
            [sys.executable, '-c', 'import dotstrap.cli'],
            env=env,
            capture_output=True,
            text=True,
        )

        assert result.returncode == 0, result.stderr
