"""Command-line interface."""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Callable, Sequence

from niji import runtime_paths
from niji.app import NijiApp
from niji.config.settings import AppSettings
from niji.console import configure_logging, format_report, format_theme_preview
from niji.errors import NijiError, UnsupportedOperationError, format_error_for_user

__appname__ = "niji"
__version__ = "0.1.0"

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1

NO_RELOAD_HELP = (
    "Do not reload the module targets to apply the changes immediately. "
    "Changes will only take effect after a restart."
)


def _global_options(suppress_defaults: bool) -> argparse.ArgumentParser:
    # Registered on the root parser and on every subcommand so the flags work
    # on either side of the subcommand name.
    default = argparse.SUPPRESS if suppress_defaults else False
    parser = argparse.ArgumentParser(add_help=False)
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument("-q", "--quiet", action="store_true", default=default,
                           help="Disable all log messages")
    verbosity.add_argument("-v", "--verbose", action="store_true", default=default,
                           help="Print additional debug output")
    parser.add_argument("-b", "--no-color", action="store_true", default=default,
                        help="Disable color output")
    return parser


def build_parser() -> argparse.ArgumentParser:
    shared = _global_options(suppress_defaults=True)
    parser = argparse.ArgumentParser(
        prog=__appname__,
        description="An extensible desktop theming utility",
        parents=[_global_options(suppress_defaults=False)],
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    commands = parser.add_subparsers(dest="command", metavar="COMMAND", required=True)

    apply_cmd = commands.add_parser(
        "apply",
        parents=[shared],
        help="Apply (or re-apply) the current theme and configuration",
    )
    apply_cmd.add_argument(
        "-M", "--module",
        dest="modules",
        action="append",
        metavar="NAME",
        help=(
            "The module to apply the config to. Can be set multiple times to apply to "
            "multiple modules. If not set, all active modules will be applied."
        ),
    )
    apply_cmd.add_argument("-k", "--no-reload", action="store_true", help=NO_RELOAD_HELP)
    apply_cmd.set_defaults(handler=cmd_apply)

    theme_cmd = commands.add_parser(
        "theme",
        parents=[shared],
        help="Change the theme, list available themes and related actions",
    )
    theme_commands = theme_cmd.add_subparsers(dest="theme_command", metavar="ACTION", required=True)

    get_cmd = theme_commands.add_parser("get", parents=[shared], help="Get the name of the current theme")
    get_cmd.set_defaults(handler=cmd_theme_get)

    show_cmd = theme_commands.add_parser(
        "show", parents=[shared], help="Display a preview of a theme in the console"
    )
    show_cmd.add_argument(
        "name", nargs="?",
        help="The theme to preview. Defaults to the current theme if not set.",
    )
    show_cmd.set_defaults(handler=cmd_theme_show)

    set_cmd = theme_commands.add_parser("set", parents=[shared], help="Change the current theme")
    set_cmd.add_argument("name", help="The name of the theme to change to")
    set_mode = set_cmd.add_mutually_exclusive_group()
    set_mode.add_argument("-n", "--no-apply", action="store_true",
                          help="Don't apply the theme after setting it")
    set_mode.add_argument("-k", "--no-reload", action="store_true", help=NO_RELOAD_HELP)
    set_cmd.set_defaults(handler=cmd_theme_set)

    list_cmd = theme_commands.add_parser("list", parents=[shared], help="List the names of available themes")
    list_cmd.set_defaults(handler=cmd_theme_list)

    unset_cmd = theme_commands.add_parser(
        "unset",
        parents=[shared],
        help="Unset the current theme. Note that this will not make any changes to the emitted files!",
    )
    unset_cmd.set_defaults(handler=cmd_theme_unset)
    return parser


def cmd_apply(app: NijiApp, args: argparse.Namespace) -> int:
    report = app.apply(reload=not args.no_reload, modules=args.modules)
    if report.outcomes:
        logger.debug("apply summary:\n%s", format_report(report, color=not args.no_color))
    if not report.ok:
        failed = ", ".join(outcome.module for outcome in report.failed)
        logger.error("%d module(s) failed: %s", len(report.failed), failed)
        return EXIT_FAILURE
    return EXIT_OK


def cmd_theme_get(app: NijiApp, args: argparse.Namespace) -> int:
    print(app.current_theme().name)
    return EXIT_OK


def cmd_theme_show(app: NijiApp, args: argparse.Namespace) -> int:
    if args.no_color:
        raise UnsupportedOperationError(
            message=(
                "Theme display is not supported in no-color mode. You can query the "
                "theme name by using `niji theme get`."
            ),
        )
    theme = app.get_theme(args.name) if args.name else app.current_theme()
    print(format_theme_preview(theme))
    return EXIT_OK


def cmd_theme_set(app: NijiApp, args: argparse.Namespace) -> int:
    app.set_theme(args.name)
    if args.no_apply:
        return EXIT_OK
    return cmd_apply(app, argparse.Namespace(no_reload=args.no_reload, modules=None, no_color=args.no_color))


def cmd_theme_list(app: NijiApp, args: argparse.Namespace) -> int:
    empty = True
    for theme in app.list_themes():
        empty = False
        print(theme.name)
    if empty:
        logger.error("No usable themes were found")
        return EXIT_FAILURE
    return EXIT_OK


def cmd_theme_unset(app: NijiApp, args: argparse.Namespace) -> int:
    app.unset_theme()
    return EXIT_OK


def run(
    argv: Sequence[str] | None = None,
    *,
    app_factory: Callable[[], NijiApp] | None = None,
) -> int:
    """Parse ``argv``, run the selected command and return the exit code."""
    parser = build_parser()
    args = parser.parse_args(argv)
    # Each parser only sees its own half of "niji -q apply -v".
    if args.quiet and args.verbose:
        parser.error("argument -q/--quiet: not allowed with argument -v/--verbose")
    configure_logging(
        quiet=args.quiet,
        verbose=args.verbose,
        color=not args.no_color,
        log_dir=runtime_paths.log_dir(),
    )
    logger.debug("arguments: %s", vars(args))

    try:
        app = app_factory() if app_factory is not None else NijiApp.from_settings(AppSettings())
        return args.handler(app, args)
    except NijiError as err:
        logger.error("%s", format_error_for_user(err))
        logger.debug("error details: %s", err.to_dict())
        return EXIT_FAILURE


def main() -> None:
    sys.exit(run())
