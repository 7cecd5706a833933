# -*- coding: utf-8 -*-
"""
Loguru sinks for the bridge process.
"""

import os
import pathlib
import sys

from loguru import logger

from .defaults import DEFAULT_LOGLEVEL


def start_bridge_log(
    log_to_file=True,
    log_to_stdout=False,
    log_path=None,
    clear_prev=True,
    log_level=DEFAULT_LOGLEVEL,
):
    if log_path is None or log_path == "":
        log_path = log_default_path_bridge()
    else:
        log_path = os.path.abspath(log_path)

    if clear_prev:
        clear_log(log_path)

    # first remove (default) stderr output
    logger.remove()

    if log_to_file:
        logger.add(log_path, level=log_level, enqueue=True, colorize=False)
        logger.our_naughty_log_path_attr = log_path
    if log_to_stdout:
        logger.add(sys.stderr, level=log_level, enqueue=True, colorize=True)
    if log_to_file:
        logger.info("Bridge log started at {}", log_path)
    else:
        logger.info("Bridge log started.")


def shutdown_bridge_log():
    try:
        logger.info("Closing down bridge log.")
        logger.complete()
        logger.remove()
    except Exception:
        logger.exception("Error shutting down bridge log - skipping.")


def log_default_path_bridge() -> str:
    return str(pathlib.Path.home().joinpath(".qbridge/bridge.log"))


def clear_log(log_path: str):
    """
    Clear the logger file at the given path, if it exists.

    Arguments
    ---------
    log_path : str
        The path to the logger file. Can get the default path with
        log_default_path_bridge().
    """
    if os.path.exists(log_path):
        try:
            os.remove(log_path)
        except PermissionError:
            logger.error(
                f"Could not clear log file {log_path}. Permission denied. Continuing."
            )


def get_log_filename() -> str:
    """Finds the logger filename."""
    if hasattr(logger, "our_naughty_log_path_attr"):
        return logger.our_naughty_log_path_attr
    else:
        return ""
