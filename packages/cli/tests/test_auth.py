"""Tests for GitHub token resolution."""

import subprocess
from unittest.mock import MagicMock

import pytest

from ailinter_cli.auth import resolve_github_token


@pytest.fixture(autouse=True)
def _clear_token_env(monkeypatch):
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)
    monkeypatch.delenv("GITHUB_PERSONAL_ACCESS_TOKEN", raising=False)


def test_github_token_env_wins(monkeypatch, mocker):
    monkeypatch.setenv("GITHUB_TOKEN", "app-token")
    monkeypatch.setenv("GITHUB_PERSONAL_ACCESS_TOKEN", "pat")
    run = mocker.patch("ailinter_cli.auth.subprocess.run")
    assert resolve_github_token() == "app-token"
    run.assert_not_called()


def test_personal_access_token_env(monkeypatch, mocker):
    monkeypatch.setenv("GITHUB_PERSONAL_ACCESS_TOKEN", "pat")
    mocker.patch("ailinter_cli.auth.subprocess.run")
    assert resolve_github_token() == "pat"


def test_gh_cli_fallback(mocker):
    mocker.patch("ailinter_cli.auth.subprocess.run", return_value=MagicMock(returncode=0, stdout="gho_abc\n"))
    assert resolve_github_token() == "gho_abc"


def test_gh_cli_not_logged_in(mocker):
    mocker.patch("ailinter_cli.auth.subprocess.run", return_value=MagicMock(returncode=1, stdout=""))
    assert resolve_github_token() is None


def test_gh_cli_empty_output(mocker):
    mocker.patch("ailinter_cli.auth.subprocess.run", return_value=MagicMock(returncode=0, stdout="  \n"))
    assert resolve_github_token() is None


def test_gh_not_installed(mocker):
    mocker.patch("ailinter_cli.auth.subprocess.run", side_effect=FileNotFoundError)
    assert resolve_github_token() is None


def test_gh_timeout(mocker):
    mocker.patch("ailinter_cli.auth.subprocess.run", side_effect=subprocess.TimeoutExpired("gh", 5))
    assert resolve_github_token() is None
