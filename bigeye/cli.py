from __future__ import annotations

import argparse
import asyncio
import os
import re
import shlex
import signal
import sys
from typing import Any, Sequence

from bigeye import display
from bigeye.core import paths
from bigeye.core.errors import BigEyeError, ConfigurationError
from bigeye.core.supervisor import Supervisor, create_supervisor
from bigeye.core.util import split_csv

VERSION = "0.1.0"

DESCRIPTION = "Re-run a command whenever files change."

EPILOG = """\
examples:
  eye app.js
  eye build.js -w src/
  eye python module.py -i '*.pyc'
  eye 'g++ main.cpp && ./a.out'

tips:
  Run eye without arguments to execute the npm start script.
"""

# Single-argument commands containing any of these are handed to the shell.
SHELL_META_RE = re.compile(r"[|&;<>()$`\n*?]")
SHELL_OPERATORS = {"&&", "||", "|", ";", ">", ">>", "<", "2>", "2>&1", "&"}

INTERPRETERS = {
    ".js": "node",
    ".mjs": "node",
    ".cjs": "node",
    ".py": "python3",
    ".rb": "ruby",
    ".sh": "sh",
}


def _die(msg: str) -> None:
    display.log("error", msg)
    sys.exit(1)


def _shell(text: str) -> list[str]:
    return ["sh", "-c", text]


def _with_interpreter(cwd: str, argv: list[str]) -> list[str]:
    head = argv[0]
    path = os.path.join(cwd, head)
    if not os.path.isfile(path) or os.access(path, os.X_OK):
        return argv
    interpreter = INTERPRETERS.get(os.path.splitext(head)[1].lower())
    if interpreter is None:
        return argv
    return [interpreter, *argv]


def parse_command(cwd: str, tokens: Sequence[str]) -> list[str]:
    tokens = [t for t in tokens if t != ""]
    if not tokens:
        return []
    if len(tokens) == 1:
        text = tokens[0].strip()
        if not text:
            return []
        if SHELL_META_RE.search(text):
            return _shell(text)
        argv = shlex.split(text)
    elif any(t in SHELL_OPERATORS for t in tokens):
        text = " ".join(t if t in SHELL_OPERATORS else shlex.quote(t) for t in tokens)
        return _shell(text)
    else:
        argv = list(tokens)
    return _with_interpreter(cwd, argv) if argv else []


def default_command(cwd: str) -> list[str]:
    if paths.npm_start_script(cwd) is None:
        return []
    return ["npm", "start"]


def flags_to_options(cwd: str, args: argparse.Namespace) -> dict[str, Any]:
    watch = [paths.resolve(cwd, p) for p in split_csv(args.watch)] or [cwd]
    ignore = split_csv(args.ignore)
    if not args.ignore:
        ignore = paths.read_gitignore(cwd)
    options: dict[str, Any] = {
        "watch": watch,
        "ignore": ignore,
        "lazy": args.lazy,
        "delay": args.delay,
        "quiet": args.quiet,
        "cwd": cwd,
    }
    grace = paths.grace_period_override()
    if grace is not None:
        options["grace_period"] = grace
    return options


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="eye",
        usage="%(prog)s [options] <command>",
        description=DESCRIPTION,
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--version", action="version", version=f"eye {VERSION}")
    parser.add_argument(
        "-w", "--watch", action="append", metavar="PATH",
        help="files/directories to be watched [default: pwd]",
    )
    parser.add_argument(
        "-i", "--ignore", action="append", metavar="PATTERN",
        help="files/directories to be ignored [default: from .gitignore]",
    )
    parser.add_argument(
        "-l", "--lazy", action="store_true",
        help="don't execute command on startup",
    )
    parser.add_argument(
        "-d", "--delay", default="10", metavar="MS",
        help="debounce delay in ms between command executions [default: 10]",
    )
    parser.add_argument(
        "-q", "--quiet", action="store_true",
        help="print only command output",
    )
    parser.add_argument("command", nargs="*", help=argparse.SUPPRESS)
    return parser


async def serve(supervisor: Supervisor) -> None:
    loop = asyncio.get_running_loop()
    closing: set[asyncio.Task] = set()

    def shutdown() -> None:
        task = loop.create_task(supervisor.close())
        closing.add(task)
        task.add_done_callback(closing.discard)

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, shutdown)
        except (NotImplementedError, RuntimeError):
            pass
    await supervisor.run()


def main(argv: Sequence[str] | None = None) -> None:
    parser = build_parser()
    args, extra = parser.parse_known_args(argv)
    cwd = os.getcwd()

    tokens = list(args.command) + list(extra)
    command = parse_command(cwd, tokens) if tokens else default_command(cwd)
    if not command:
        parser.print_help()
        return

    out = display.quiet_log if args.quiet else display.log
    try:
        supervisor = create_supervisor(command[0], command[1:], flags_to_options(cwd, args))
    except ConfigurationError as exc:
        _die(str(exc))
        return

    display.attach(supervisor, supervisor.config, out)
    out("info", display.format_banner(supervisor.config))

    try:
        asyncio.run(serve(supervisor))
    except KeyboardInterrupt:
        pass
    except BigEyeError as exc:
        _die(str(exc))


if __name__ == "__main__":
    main()
