"""CLI entry point for srepd."""

import argparse
import json
import logging
import sys
from importlib import metadata

import srepd.browser
import srepd.io.logging_setup
import srepd.settings
import srepd.tui.scheduler
from srepd.launcher import ClusterLauncher, LauncherError
from srepd.pd.client import PagerDutyClient
from srepd.tui import commands as c
from srepd.tui.app import SrepdApp
from srepd.tui.model import State

logger = logging.getLogger(__name__)


def _version() -> str:
    try:
        return metadata.version("srepd")
    except metadata.PackageNotFoundError:
        return "unknown"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="srepd",
        description="Terminal console for triaging PagerDuty incidents",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {_version()}")
    parser.add_argument("--debug", action="store_true", help="Log at DEBUG level")
    subparsers = parser.add_subparsers(dest="command")

    config = subparsers.add_parser("config", help="Create, validate or show the settings file")
    group = config.add_mutually_exclusive_group()
    group.add_argument(
        "--create", action="store_true", help="Write an example settings file"
    )
    group.add_argument(
        "--validate", action="store_true", help="Validate the settings file and exit"
    )
    config.add_argument(
        "--force", action="store_true", help="With --create, overwrite an existing file"
    )
    return parser


def _config_command(args) -> int:
    path = srepd.settings.get_config_path()
    if args.create:
        if path.exists() and not args.force:
            print(f"{path} already exists (use --force to overwrite)", file=sys.stderr)
            return 1
        srepd.settings.save_config(srepd.settings.example_config(), path)
        print(f"wrote example settings to {path}")
        return 0

    try:
        config = srepd.settings.load_config(path)
        ClusterLauncher.from_config(config.terminal, config.cluster_login_command)
    except (srepd.settings.ConfigError, LauncherError) as e:
        print(str(e), file=sys.stderr)
        return 1
    if args.validate:
        print(f"{path}: ok")
    else:
        print(json.dumps(config.redacted(), indent=2))
    return 0


def build_state(config: srepd.settings.Config) -> State:
    """Initial State from validated settings. Raises LauncherError."""
    launcher = ClusterLauncher.from_config(config.terminal, config.cluster_login_command)
    return State(
        editor=config.editor,
        launcher=launcher,
        browser_command=srepd.browser.default_open_command(),
        team_mode=False,
        scheduled_jobs=srepd.tui.scheduler.DEFAULT_JOBS,
    )


def _run_console(args) -> int:
    try:
        config = srepd.settings.load_config()
        state = build_state(config)
    except (srepd.settings.ConfigError, LauncherError) as e:
        logger.error("fatal: %s", e)
        print(f"fatal: {e}", file=sys.stderr)
        return 1

    logger.info("starting srepd %s with %s", _version(), config.redacted())
    client = PagerDutyClient(config.token)
    app = SrepdApp(state, startup=c.load_config(client, config))
    app.run()
    return app.return_code or 0


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        runtime = srepd.io.logging_setup.configure(
            debug=args.debug, console=args.command is not None
        )
    except srepd.io.logging_setup.LoggingSetupError as e:
        print(f"fatal: {e}", file=sys.stderr)
        return 1
    logger.debug("logging to %s at %s", runtime.file_path, runtime.level_name)

    if args.command == "config":
        return _config_command(args)
    return _run_console(args)


if __name__ == "__main__":
    sys.exit(main())
