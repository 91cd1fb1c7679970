"""review command: lint a pull request with the Codex review agent."""

from __future__ import annotations

import os
import re
import subprocess
from pathlib import Path

import click
from rich.console import Console

from ailinter_core.errors import AILinterError, SessionInterruptedError
from ailinter_core.gh.remote import detect_github_repo
from ailinter_core.linter import run_lint
from ailinter_core.models import PRContext

console = Console()

_PULL_REF_RE = re.compile(r"^refs/pull/(\d+)/")

EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130


def _current_branch(working_dir: Path) -> str | None:
    try:
        result = subprocess.run(
            ["git", "rev-parse", "--abbrev-ref", "HEAD"],
            cwd=working_dir,
            capture_output=True,
            text=True,
            timeout=5,
        )
    except (FileNotFoundError, subprocess.TimeoutExpired):
        return None
    if result.returncode != 0:
        return None
    return result.stdout.strip() or None


def _detect_pr_from_env(base: str, head: str | None, working_dir: Path) -> tuple[int, str, str | None] | None:
    """Read the PR number and refs GitHub Actions exposes on pull_request events.

    GITHUB_REF is ``refs/pull/<number>/merge`` there; GITHUB_BASE_REF and
    GITHUB_HEAD_REF carry the branch names.
    """
    match = _PULL_REF_RE.match(os.environ.get("GITHUB_REF", ""))
    if not match:
        return None
    pr_number = int(match.group(1))
    base = os.environ.get("GITHUB_BASE_REF") or base
    head = os.environ.get("GITHUB_HEAD_REF") or head or _current_branch(working_dir)
    return pr_number, base, head


@click.command("review")
@click.option(
    "--rules",
    "-r",
    default=None,
    help="Path to the style guidelines file.  [default: STYLE-GUIDELINES.md]",
)
@click.option("--pr", "-p", "pr_number", type=int, default=None, help="Pull request number to review.")
@click.option("--base", "-b", default=None, help="Base branch for comparison.  [default: main]")
@click.option("--head", "-h", default=None, help="Head branch for comparison.")
@click.option("--model", "-m", default=None, help="OpenAI model the agent uses.  [default: o4-mini]")
@click.option("--repo-owner", "-o", default=None, help="GitHub repository owner. Detected from git remote.")
@click.option("--repo-name", "-n", default=None, help="GitHub repository name. Detected from git remote.")
@click.option("--dry-run", is_flag=True, help="Print the agent prompt instead of running the agent.")
@click.option("--verbose", "-v", is_flag=True, help="Verbose logging.")
@click.pass_context
def review_cmd(
    ctx,
    rules: str | None,
    pr_number: int | None,
    base: str | None,
    head: str | None,
    model: str | None,
    repo_owner: str | None,
    repo_name: str | None,
    dry_run: bool,
    verbose: bool,
):
    """Review pull request changes against your style guidelines.

    Removes pending reviews left by earlier runs, checks whether the agent
    may request changes, then runs the Codex CLI with the GitHub MCP server
    so it can comment on the PR.

    \b
    Required environment variables:
      GITHUB_TOKEN                   GitHub App token, or
      GITHUB_PERSONAL_ACCESS_TOKEN   personal access token (or use gh CLI)
      OPENAI_API_KEY                 OpenAI key for the Codex CLI
    """
    from ailinter_core.config import load_config
    from ailinter_cli.auth import resolve_github_token
    from ailinter_cli.log import configure_logging

    configure_logging(verbose)
    working_dir = Path.cwd()
    config_path = (ctx.obj or {}).get("config_path", ".ailinter.yml")

    config = load_config(config_path, cli_overrides={"rules": rules, "base": base, "model": model})

    token = resolve_github_token()
    if not token:
        raise click.UsageError(
            "No GitHub token found. Set GITHUB_TOKEN (GitHub App) or GITHUB_PERSONAL_ACCESS_TOKEN, "
            "or run `gh auth login` first."
        )
    config["github_token"] = token

    if not dry_run and not config.get("openai_api_key"):
        raise click.UsageError('OPENAI_API_KEY is not set. Run: export OPENAI_API_KEY="your-api-key-here"')

    if not repo_owner or not repo_name:
        try:
            detected_owner, detected_name = detect_github_repo(working_dir)
        except ValueError as e:
            raise click.UsageError(f"{e}. Pass --repo-owner and --repo-name.")
        repo_owner = repo_owner or detected_owner
        repo_name = repo_name or detected_name

    base_ref = config["base"]
    if pr_number is None:
        detected = _detect_pr_from_env(base_ref, head, working_dir)
        if detected is None:
            raise click.UsageError("Could not determine the pull request number. Pass --pr.")
        pr_number, base_ref, head = detected

    pr = PRContext(
        pr_number=pr_number,
        base_ref=base_ref,
        head_ref=head,
        repo_owner=repo_owner,
        repo_name=repo_name,
    )

    console.print("[blue]🤖 - Powered by OpenAI Codex[/blue]")
    try:
        run_lint(pr, config, working_dir=working_dir, dry_run=dry_run)
    except SessionInterruptedError as e:
        console.print(f"[red]Error: {e}[/red]")
        ctx.exit(EXIT_INTERRUPTED)
    except AILinterError as e:
        console.print(f"[red]Error: {e}[/red]")
        ctx.exit(EXIT_FAILURE)
