"""Configuration file I/O for srepd.

Reads a JSON settings file at XDG_CONFIG_HOME/srepd/settings.json
(SREPD_CONFIG overrides the path) and validates it into a frozen Config.

// [LAW:one-source-of-truth] Defaults, required keys and deprecations are the tables below.

This module is a STABLE BOUNDARY.
Import as: import srepd.settings
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from dataclasses import asdict, dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)

REQUIRED_KEYS = ("token", "teams", "service_escalation_policies")
REQUIRED_POLICIES = ("DEFAULT", "SILENT_DEFAULT")

DEFAULTS: dict[str, object] = {
    "ignoredusers": [],
    "editor": "vim",
    "terminal": "gnome-terminal --",
    "cluster_login_command": "ocm backplane login %%CLUSTER_ID%%",
}

# key -> replacement hint
DEPRECATED_KEYS: dict[str, str] = {
    "shell": "use 'terminal' instead",
    "silentuser": "use the SILENT_DEFAULT entry of 'service_escalation_policies' instead",
}

MASK = "*****"


class ConfigError(Exception):
    """Settings file is missing, unreadable or invalid."""

    def __init__(self, problems: list[str], path: Path | None = None):
        self.problems = problems
        self.path = path
        where = f" ({path})" if path is not None else ""
        super().__init__(f"invalid configuration{where}: " + "; ".join(problems))


@dataclass(frozen=True)
class Config:
    token: str = field(repr=False)
    teams: tuple[str, ...]
    service_escalation_policies: dict[str, str]
    ignoredusers: tuple[str, ...] = ()
    editor: str = "vim"
    terminal: str = "gnome-terminal --"
    cluster_login_command: str = "ocm backplane login %%CLUSTER_ID%%"

    def redacted(self) -> dict:
        """Dict form safe for logging: the token is masked."""
        data = asdict(self)
        data["token"] = MASK
        return data


def get_config_path() -> Path:
    """Return path to the settings file.

    Uses SREPD_CONFIG if set, else XDG_CONFIG_HOME (default ~/.config) / srepd / settings.json.
    """
    override = os.environ.get("SREPD_CONFIG")
    if override:
        return Path(override)
    return get_config_dir() / "settings.json"


def get_config_dir() -> Path:
    config_home = os.environ.get("XDG_CONFIG_HOME", os.path.expanduser("~/.config"))
    return Path(config_home) / "srepd"


def example_config() -> dict:
    """Example settings document written by ``srepd config --create``."""
    return {
        "token": "<PagerDuty API token>",
        "teams": ["<team id>"],
        "service_escalation_policies": {
            "DEFAULT": "<escalation policy id>",
            "SILENT_DEFAULT": "<no-notify escalation policy id>",
        },
        **DEFAULTS,
    }


def validate(data: object) -> list[str]:
    """Return every problem found in a raw settings document (empty when valid)."""
    if not isinstance(data, dict):
        return ["settings must be a JSON object"]
    problems = [f"missing required key '{key}'" for key in REQUIRED_KEYS if not data.get(key)]

    teams = data.get("teams")
    if teams is not None and not (isinstance(teams, list) and all(isinstance(t, str) for t in teams)):
        problems.append("'teams' must be a list of team ids")

    policies = data.get("service_escalation_policies")
    if isinstance(policies, dict):
        keys = {str(k).upper() for k in policies}
        problems += [
            f"'service_escalation_policies' must contain '{name}'"
            for name in REQUIRED_POLICIES
            if name not in keys
        ]
    elif policies is not None:
        problems.append("'service_escalation_policies' must be an object")

    for key in ("editor", "terminal", "cluster_login_command"):
        value = data.get(key)
        if value is not None and not isinstance(value, str):
            problems.append(f"'{key}' must be a string")
    ignored = data.get("ignoredusers")
    if ignored is not None and not isinstance(ignored, list):
        problems.append("'ignoredusers' must be a list of user ids")
    return problems


def from_dict(data: dict, *, path: Path | None = None) -> Config:
    """Validate and build a Config, applying defaults and warning on deprecated keys."""
    problems = validate(data)
    if problems:
        raise ConfigError(problems, path)

    for key, hint in DEPRECATED_KEYS.items():
        if key in data:
            logger.warning("config key '%s' is deprecated and ignored: %s", key, hint)

    editor = data.get("editor") or os.environ.get("EDITOR") or DEFAULTS["editor"]
    return Config(
        token=str(data["token"]),
        teams=tuple(data["teams"]),
        service_escalation_policies={
            str(k).upper(): str(v) for k, v in data["service_escalation_policies"].items()
        },
        ignoredusers=tuple(str(u) for u in data.get("ignoredusers") or ()),
        editor=str(editor),
        terminal=str(data.get("terminal") or DEFAULTS["terminal"]),
        cluster_login_command=str(
            data.get("cluster_login_command") or DEFAULTS["cluster_login_command"]
        ),
    )


def load_config(path: Path | None = None) -> Config:
    """Load and validate the settings file. Raises ConfigError."""
    path = path or get_config_path()
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise ConfigError(["settings file not found; run 'srepd config --create' to write an example"], path) from e
    except json.JSONDecodeError as e:
        raise ConfigError([f"settings file is not valid JSON: {e}"], path) from e
    except OSError as e:
        raise ConfigError([f"cannot read settings file: {e}"], path) from e
    config = from_dict(raw, path=path)
    logger.debug("loaded config from %s: %s", path, config.redacted())
    return config


def save_config(data: dict, path: Path | None = None) -> Path:
    """Atomic write of a settings document. Returns the written path.

    Writes to a temp file in the target directory then renames it over
    the destination so a crash never leaves a partial file.
    """
    path = path or get_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=path.parent, suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
            f.write("\n")
        os.replace(tmp_path, path)
    except Exception:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise
    return path
