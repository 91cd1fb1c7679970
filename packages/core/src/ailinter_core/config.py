import logging
import os
from pathlib import Path
from typing import Optional

import yaml

logger = logging.getLogger(__name__)

DEFAULT_RULES_FILE = "STYLE-GUIDELINES.md"

DEFAULT_CONFIG: dict = {
    "rules": DEFAULT_RULES_FILE,
    "base": "main",
    "model": "o4-mini",
    "agent_command": "codex",  # executable name or path of the Codex CLI
    "mcp_server": "github-mcp-server",  # executable name or path; see `ailinter setup-mcp`
    "cleanup_pending_reviews": True,
}

BUILTIN_GUIDELINES_DIR = Path(__file__).parent / "guidelines"
_BUILTIN_RULES = BUILTIN_GUIDELINES_DIR / "style.md"


def _env_int(name: str) -> Optional[int]:
    value = os.environ.get(name)
    if not value:
        return None
    try:
        return int(value)
    except ValueError:
        logger.warning("Ignoring non-numeric %s=%r", name, value)
        return None


def load_config(config_path: str = ".ailinter.yml", cli_overrides: Optional[dict] = None) -> dict:
    """
    Load configuration by merging (in order of precedence):
      1. Built-in defaults
      2. .ailinter.yml in the current directory
      3. CLI argument overrides
    """
    config = dict(DEFAULT_CONFIG)

    path = Path(config_path)
    if path.exists():
        with open(path) as f:
            file_config = yaml.safe_load(f) or {}
        config.update(file_config)

    if cli_overrides:
        for key, value in cli_overrides.items():
            if value is not None:
                config[key] = value

    # The GitHub token is resolved by the CLI (ailinter_cli.auth), not here.
    # Other credentials and CI-provided hints come from the environment only.
    config["openai_api_key"] = os.environ.get("OPENAI_API_KEY")
    config["github_api_url"] = os.environ.get("GITHUB_API_URL")
    config["installation_id"] = _env_int("AILINTER_APP_INSTALLATION_ID")
    config["bot_id"] = _env_int("AILINTER_BOT_ID")
    config["bot_login"] = os.environ.get("AILINTER_BOT_LOGIN")
    config["bot_name"] = os.environ.get("AILINTER_BOT_NAME")

    return config


def _candidate_rules_paths(rules: str, working_dir: Path) -> list[Path]:
    return [
        working_dir / "docs" / rules,
        working_dir / ".github" / rules,
        working_dir / DEFAULT_RULES_FILE,
        working_dir / "docs" / DEFAULT_RULES_FILE,
        working_dir / ".github" / DEFAULT_RULES_FILE,
    ]


def find_rules_file(rules: str, working_dir: Path) -> Optional[Path]:
    """Return the first existing style rules file, or None.

    The configured path is tried first (relative to ``working_dir`` unless
    absolute), then the conventional ``docs/`` and ``.github/`` locations.
    """
    direct = (working_dir / rules).resolve()
    if direct.is_file():
        return direct

    for candidate in _candidate_rules_paths(rules, working_dir):
        if candidate.is_file():
            return candidate

    logger.debug(
        "Rules file %s not found; searched: %s",
        rules,
        ", ".join(str(p) for p in _candidate_rules_paths(rules, working_dir)),
    )
    return None


def write_default_rules(working_dir: Path) -> Path:
    """Write the built-in style rules to STYLE-GUIDELINES.md and return its path."""
    if not _BUILTIN_RULES.exists():
        raise FileNotFoundError("Built-in default style rules are missing.")
    target = working_dir / DEFAULT_RULES_FILE
    target.write_text(_BUILTIN_RULES.read_text())
    return target


def resolve_rules_file(config: dict, working_dir: Path) -> tuple[Path, bool]:
    """Locate the style rules, creating the default file when none exists.

    Returns the path and whether it was newly created.
    """
    found = find_rules_file(config.get("rules") or DEFAULT_RULES_FILE, working_dir)
    if found is not None:
        return found, False
    return write_default_rules(working_dir), True
