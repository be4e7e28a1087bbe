"""Cluster-login command builder and external process runner.

The login command is ``terminal`` followed by ``cluster_login_command``,
with the ``%%CLUSTER_ID%%`` placeholder substituted at build time.

// [LAW:dataflow-not-control-flow] validate() collects every problem as data before raising.

This module is a STABLE BOUNDARY.
"""

from __future__ import annotations

import logging
import shlex
import subprocess
from typing import Mapping, Sequence

logger = logging.getLogger(__name__)

CLUSTER_ID = "%%CLUSTER_ID%%"
PLACEHOLDER_MARK = "%%"


class LauncherError(Exception):
    """Launcher configuration is invalid."""


class CommandError(Exception):
    """An external command could not start or reported errors on stderr."""


def _replace_vars(args: Sequence[str], variables: Mapping[str, str]) -> list[str]:
    replaced = []
    for arg in args:
        for key, value in variables.items():
            arg = arg.replace(key, value)
        replaced.append(arg)
    return replaced


class ClusterLauncher:
    """Builds the argv used to open a terminal logged into a cluster."""

    __slots__ = ("terminal", "login_command")

    def __init__(self, terminal: Sequence[str], login_command: Sequence[str]):
        self.terminal = list(terminal)
        self.login_command = list(login_command)

    @classmethod
    def from_config(cls, terminal: str, login_command: str) -> "ClusterLauncher":
        """Split both strings shell-style and validate. Raises LauncherError."""
        launcher = cls(shlex.split(terminal or ""), shlex.split(login_command or ""))
        launcher.validate()
        return launcher

    def __repr__(self) -> str:
        return "ClusterLauncher(terminal={!r}, login_command={!r})".format(
            self.terminal, self.login_command
        )

    def validate(self) -> None:
        errors = []
        if not self.terminal or not self.terminal[0]:
            errors.append("terminal is not set")
        if not self.login_command or not self.login_command[0]:
            errors.append("cluster_login_command is not set")
        if self.terminal and PLACEHOLDER_MARK in self.terminal[0]:
            errors.append("first terminal argument cannot have a replaceable")
        if CLUSTER_ID not in " ".join(self.login_command) and CLUSTER_ID not in " ".join(self.terminal):
            errors.append(f"cluster_login_command must contain {CLUSTER_ID}")
        if errors:
            raise LauncherError("login error: [{}]".format(", ".join(errors)))

    def build_login_command(self, cluster_id: str) -> list[str]:
        """argv for logging into ``cluster_id``.

        The first terminal argument is kept verbatim. When the login command
        has no placeholder of its own the cluster id is appended to it.
        """
        variables = {CLUSTER_ID: cluster_id}
        command = [self.terminal[0]]
        command += _replace_vars(self.terminal[1:], variables)
        login = _replace_vars(self.login_command, variables)
        if CLUSTER_ID not in " ".join(self.login_command):
            login.append(cluster_id)
        command += login
        logger.debug("built login command: %s", command)
        return command


def run_command(argv: Sequence[str]) -> None:
    """Run ``argv`` to completion; raise CommandError on failure.

    Any output on stderr counts as failure, as terminal emulators and
    browser openers usually exit 0 even when they could not do their job.
    """
    logger.info("running %s", argv)
    try:
        proc = subprocess.Popen(
            list(argv),
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.PIPE,
            text=True,
        )
    except OSError as e:
        raise CommandError(f"{argv[0] if argv else '<empty>'}: {e}") from e
    _, stderr = proc.communicate()
    stderr = (stderr or "").strip()
    if stderr:
        raise CommandError(stderr)
    if proc.returncode:
        raise CommandError(f"{argv[0]} exited with status {proc.returncode}")
