# -*- coding: utf-8 -*-
# pydoit task file
# see https://pydoit.org/
# run from this dir with `doit`, or `doit list`, `doit help` etc. (pip install doit 1st)

from doit.action import CmdAction


def _build_pytest_command(
    test_dir,
    keyword="",
    speed="",
    retry=False,
    print_logs=False,
    full_trace=False,
    show_time=False,
):
    """Helper function to build pytest commands for test tasks."""
    cmd = ["pytest"]

    # Add options
    if print_logs:
        cmd.append("--capture=no")
    if full_trace:
        cmd.append("--full-trace")
    if show_time:
        cmd.append("--durations=0")

    # Add common flags
    cmd.extend(["--color=yes", "-vv", "-x"])

    # Add filters
    if retry:
        cmd.append("--lf")
    if keyword:
        cmd.extend(["-k", keyword])
    if speed:
        if speed == "slow":
            cmd.extend(["-m", "slow"])
        elif speed in ["not slow", "fast"]:
            cmd.extend(["-m", '"not slow"'])
        elif speed == "all":
            pass
        elif speed:
            raise ValueError(
                f"Invalid speed filter: {speed}. Use 'slow', 'not slow', 'fast', or 'all'"
            )

    # Add test directory
    cmd.append(test_dir)

    return " ".join(cmd)


def task_install():
    """Install qbridge in editable mode, with test dependencies"""
    return {
        "actions": ["pip install -e .[test]"],
        "verbosity": 2,
    }


def task_test_logic():
    """Run the logic test suite (tests in test/logic/)."""

    def router(keyword, speed, retry, print_logs, full_trace, show_time, help=False):
        if help:
            return """echo '
Test Logic Runner Help
====================

Filter Options:
  -k, --keyword TEXT    Only run tests matching the keyword expression
                        Example: -k "runner and not slow"
  -s, --speed TEXT      Filter tests by speed:
                        - "slow": Run only slow tests (real UDP sockets)
                        - "not slow" or "fast": Skip slow tests
                        - "all": Run all tests regardless of speed
  -r, --retry           Only run previously failed tests

Output Options:
  -p, --print-logs      Print test logs to console instead of capturing
  -f, --full-trace      Show full traceback on errors
  -t, --show-time       Display duration of all tests

Examples:
  doit test_logic                     # Run all tests
  doit test_logic -k codec            # Run tests containing "codec"
  doit test_logic -s fast -p          # Run fast tests with logs
  doit test_logic --retry --show-time # Rerun failed tests with timing
  '"""
        try:
            return _build_pytest_command(
                "test/logic/",
                keyword=keyword,
                speed=speed,
                retry=retry,
                print_logs=print_logs,
                full_trace=full_trace,
                show_time=show_time,
            )
        except ValueError as e:
            return f"echo 'Error: {str(e)}' && exit 1"

    return {
        "actions": [CmdAction(router)],
        "params": [
            {
                "name": "help",
                "long": "help",
                "default": False,
                "type": bool,
            },
            {
                "name": "keyword",
                "short": "k",
                "default": "",
            },
            {
                "name": "speed",
                "short": "s",
                "default": "",
            },
            {
                "name": "retry",
                "short": "r",
                "default": False,
                "type": bool,
            },
            {
                "name": "print_logs",
                "short": "p",
                "default": False,
                "type": bool,
            },
            {
                "name": "full_trace",
                "short": "f",
                "default": False,
                "type": bool,
            },
            {
                "name": "show_time",
                "short": "t",
                "default": False,
                "type": bool,
            },
        ],
        "verbosity": 2,
    }


def task_kill_bridges():
    """Kill orphaned qbridge processes."""
    return {
        "actions": ["python -m qbridge.server.bg_killer"],
        "verbosity": 2,
    }


def task_format():
    """Format code using ruff."""
    return {
        "actions": [
            "ruff check --select I --fix src/qbridge",
            "ruff format src/qbridge",
            "ruff check --select I --fix test/",
            "ruff format test/",
            "ruff check --select I --fix dodo.py",
            "ruff format dodo.py",
        ],
        "verbosity": 2,
    }
