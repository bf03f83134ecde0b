"""Command line interface: python -m proc_util.cli <subcommand>."""

from __future__ import annotations

import argparse
import logging
import sys

from proc_util.config import ProcessConfig
from proc_util.errors import ProcessNotFoundError, ProcessUtilError
from proc_util.process_util import ProcessUtil


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="proc-util", description="Launch, find and stop processes.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("--shell", default="/bin/sh", help="Shell used for string commands")
    sub = parser.add_subparsers(dest="action")

    run = sub.add_parser("run", help="Run a shell command and exit with its code")
    run.add_argument("command")
    run.add_argument("--no-wait", action="store_true", help="Return right after spawning")
    run.add_argument("--background", action="store_true", help="Detach as a shell job")
    run.add_argument("--capture", action="store_true", help="Print captured stdout and stderr")

    pid = sub.add_parser("pid", help="Print the pid of a running command")
    pid.add_argument("command")
    pid.add_argument("args", nargs="*")

    running = sub.add_parser("running", help="Exit 0 if the pid is running, 1 otherwise")
    running.add_argument("pid", type=int)

    kill = sub.add_parser("kill", help="Stop a pid")
    kill.add_argument("pid", type=int)
    kill.add_argument("--force", action="store_true", help="Send SIGKILL immediately")
    kill.add_argument("--grace", type=float, default=None, help="Seconds between SIGTERM and SIGKILL")

    killall = sub.add_parser("killall", help="Kill every process whose command line matches a regex")
    killall.add_argument("pattern")
    killall.add_argument("--term", action="store_true", help="Send SIGTERM instead of SIGKILL")

    info = sub.add_parser("info", help="Describe a pid and its children")
    info.add_argument("pid", type=int)
    return parser


def _run(util: ProcessUtil, args: argparse.Namespace) -> int:
    if args.capture:
        handle = util.run_with_handle(args.command)
        sys.stdout.write(handle.read_stdout())
        sys.stderr.write(handle.read_stderr())
        return handle.exit_code()
    return util.run(args.command, wait_for_completion=not args.no_wait, run_in_background=args.background)


def _dispatch(util: ProcessUtil, args: argparse.Namespace) -> int:
    if args.action == "run":
        return _run(util, args)
    if args.action == "pid":
        print(util.find_process_id(args.command, args.args))
        return 0
    if args.action == "running":
        return 0 if util.is_running(args.pid) else 1
    if args.action == "kill":
        if args.force:
            util.kill(args.pid)
        else:
            util.terminate_then_kill(args.pid, args.grace)
        return 0
    if args.action == "killall":
        for pid in util.kill_all(args.pattern, force=not args.term):
            print(pid)
        return 0
    if args.action == "info":
        print(util.describe(args.pid))
        return 0
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if args.action is None:
        parser.print_help()
        return 0

    util = ProcessUtil(ProcessConfig(shell=args.shell))
    try:
        return _dispatch(util, args)
    except ProcessNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except ProcessUtilError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
