"""Runtime configuration.

Settings come from environment variables, optionally layered over a
``workbench.yaml`` file in the workspace root. Environment always wins.
"""

import logging
import os
from pathlib import Path
from typing import Any, Optional

import yaml

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "claude-sonnet-4-6"
DEFAULT_MAX_TURNS = 12
DEFAULT_MAX_TOKENS = 8000

WORKSPACE_ROOT = Path(
    os.environ.get("WORKBENCH_WORKSPACE_ROOT", Path.cwd() / "workspace")
).resolve()

API_PORT = int(os.environ.get("API_PORT", "4000"))

SETTINGS_FILENAME = "workbench.yaml"
INSTRUCTIONS_FILENAME = "AGENT_INSTRUCTIONS.md"


def docs_root(workspace_root: Optional[Path] = None) -> Path:
    """Directory holding the workspace documents."""
    return (workspace_root or WORKSPACE_ROOT) / "docs"


def _load_settings_file(workspace_root: Path) -> dict[str, Any]:
    path = workspace_root / SETTINGS_FILENAME
    if not path.exists():
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        logger.warning(f"Ignoring unreadable settings file {path}: {e}")
        return {}
    if not isinstance(data, dict):
        logger.warning(f"Ignoring settings file {path}: expected a mapping")
        return {}
    return data


def load_settings(workspace_root: Optional[Path] = None) -> dict[str, Any]:
    """Resolve model, max_turns and max_tokens for a workspace."""
    root = workspace_root or WORKSPACE_ROOT
    file_settings = _load_settings_file(root)

    model = os.environ.get("WORKBENCH_MODEL") or file_settings.get("model") or DEFAULT_MODEL
    max_turns = os.environ.get("WORKBENCH_MAX_TURNS") or file_settings.get("max_turns")
    max_tokens = os.environ.get("WORKBENCH_MAX_TOKENS") or file_settings.get("max_tokens")

    return {
        "model": str(model),
        "max_turns": int(max_turns) if max_turns else DEFAULT_MAX_TURNS,
        "max_tokens": int(max_tokens) if max_tokens else DEFAULT_MAX_TOKENS,
    }


def read_instructions(workspace_root: Optional[Path] = None) -> str:
    """Return AGENT_INSTRUCTIONS.md from the workspace root, or an empty string."""
    path = (workspace_root or WORKSPACE_ROOT) / INSTRUCTIONS_FILENAME
    try:
        return path.read_text(encoding="utf-8")
    except OSError:
        return ""
