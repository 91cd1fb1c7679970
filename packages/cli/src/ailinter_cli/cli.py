"""CLI entry point for ailinter.

Commands:
  review     — clean up stale pending reviews, then run the Codex review agent on a PR
  setup-mcp  — build the GitHub MCP server the review agent talks to
"""

from __future__ import annotations

import importlib.metadata

import click

from ailinter_cli.commands.review import review_cmd
from ailinter_cli.commands.setup_mcp import setup_mcp_cmd


@click.group()
@click.version_option(
    version=importlib.metadata.version("ailinter"),
    prog_name="ailinter",
)
@click.option(
    "--config",
    "config_path",
    default=".ailinter.yml",
    show_default=True,
    help="Path to the configuration file.",
    envvar="AILINTER_CONFIG",
)
@click.pass_context
def main(ctx: click.Context, config_path: str):
    """AI-powered code linter for GitHub pull requests, driven by the OpenAI Codex CLI."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path


main.add_command(review_cmd)
main.add_command(setup_mcp_cmd)
