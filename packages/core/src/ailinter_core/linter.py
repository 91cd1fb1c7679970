"""Core lint session orchestration."""

from __future__ import annotations

import logging
from pathlib import Path

from rich.console import Console

from ailinter_core.brief import render_task_brief
from ailinter_core.config import resolve_rules_file
from ailinter_core.errors import AgentExitError, SessionInterruptedError
from ailinter_core.gh.client import GithubClient
from ailinter_core.identity import IdentityResolver
from ailinter_core.models import PRContext, SessionOutcome, SessionStatus
from ailinter_core.permissions import PermissionEvaluator
from ailinter_core.reconcile import PendingReviewReconciler
from ailinter_core.session import ReviewSessionController, build_agent_command, locate_mcp_server, mask_command

console = Console()
logger = logging.getLogger(__name__)


def _reconcile(client: GithubClient, resolver: IdentityResolver, pr: PRContext) -> None:
    console.print(f"Removing pending reviews for PR #{pr.pr_number} left by earlier runs...")
    try:
        report = PendingReviewReconciler(client, resolver).reconcile(pr.repo_owner, pr.repo_name, pr.pr_number)
    except Exception as e:
        console.print(f"[red]Failed to remove pending reviews for PR #{pr.pr_number}: {e}[/red]")
        raise
    if report.failed:
        console.print(f"[yellow]{len(report.failed)} pending review(s) could not be removed.[/yellow]")
    console.print(f"[green]Pending reviews cleaned up for PR #{pr.pr_number}[/green]")


def run_lint(
    pr: PRContext,
    config: dict,
    working_dir: str | Path | None = None,
    client: GithubClient | None = None,
    dry_run: bool = False,
) -> SessionOutcome | None:
    """Prepare and supervise one review session for ``pr``.

    Each stage feeds the next, so they run strictly in order: rules file,
    pending-review cleanup, permission check, task brief, agent.

    Returns the completed SessionOutcome, or None in dry-run mode.
    Raises SessionInterruptedError if the operator stopped the agent and
    AgentExitError if it failed.
    """
    working_dir = Path(working_dir) if working_dir is not None else Path.cwd()
    logger.debug("Working directory: %s", working_dir)

    rules_path, created = resolve_rules_file(config, working_dir)
    if created:
        console.print(f"[yellow]Rules file not found: {config.get('rules')}[/yellow]")
        console.print(f"[green]Created default rules file: {rules_path}[/green]")
        console.print("[yellow]Please customize it for your project needs.[/yellow]")
    else:
        console.print(f"[green]Found rules file: {rules_path}[/green]")

    if client is None:
        client = GithubClient(config["github_token"], base_url=config.get("github_api_url"))
    resolver = IdentityResolver(client, config)

    if config.get("cleanup_pending_reviews", True):
        _reconcile(client, resolver, pr)

    console.print("Checking PR permissions...")
    can_request_changes = PermissionEvaluator(client, resolver).can_request_changes(
        pr.repo_owner, pr.repo_name, pr.pr_number
    )
    console.print(f"[green]Can use request changes: {can_request_changes}[/green]")
    logger.debug("PR info: %s", pr)

    brief = render_task_brief(rules_path, pr, can_request_changes)

    if dry_run:
        console.print("[green]Dry run - would execute the review agent with prompt:[/green]")
        console.rule()
        console.print(brief, markup=False, highlight=False)
        console.rule()
        return None

    token = client.token
    command = build_agent_command(config, brief, token, locate_mcp_server(config))
    logger.debug("Running: %s", mask_command(command, token))

    console.print("Starting Codex review...")
    outcome = ReviewSessionController(command).run()

    if outcome.status is SessionStatus.INTERRUPTED:
        console.print("[yellow]Codex review interrupted by user[/yellow]")
        raise SessionInterruptedError()
    if outcome.status is SessionStatus.FAILED:
        console.print(f"[red]Codex review failed with exit code {outcome.exit_code}[/red]")
        raise AgentExitError(outcome.exit_code)

    console.print("[green]Codex review completed successfully[/green]")
    return outcome
