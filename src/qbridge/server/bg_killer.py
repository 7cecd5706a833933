import json
from pathlib import Path

import psutil
from loguru import logger


def get_bridges_dir() -> Path:
    """Get the directory for storing bridge PID files."""
    base_dir = Path.home() / ".qbridge"
    bridges_dir = base_dir / "running_bridges"
    bridges_dir.mkdir(parents=True, exist_ok=True)
    return bridges_dir


def list_running_bridges() -> list[dict]:
    """Get info about all registered bridges."""
    bridges = []
    for pid_file in get_bridges_dir().glob("bridge_*.json"):
        try:
            with pid_file.open() as f:
                bridge_info = json.load(f)
        except (OSError, json.JSONDecodeError):
            logger.debug("Unreadable PID file {}, skipping.", pid_file)
            continue
        try:
            psutil.Process(bridge_info["pid"])
            bridge_info["running"] = True
        except psutil.NoSuchProcess:
            bridge_info["running"] = False
        bridges.append(bridge_info)
    return bridges


def kill_bridges() -> int:
    """Find and kill all registered bridge processes."""
    killed = 0
    bridges_dir = get_bridges_dir()

    if not bridges_dir.exists():
        return 0

    for pid_file in bridges_dir.glob("bridge_*.json"):
        try:
            with pid_file.open() as f:
                bridge_info = json.load(f)

            pid = bridge_info["pid"]
            try:
                proc = psutil.Process(pid)
                logger.info(
                    f"Killing bridge PID {pid} started at {bridge_info['timestamp']}"
                )
                proc.kill()
                killed += 1
            except psutil.NoSuchProcess:
                logger.debug(f"Bridge PID {pid} no longer exists")

            # Clean up stale PID file
            pid_file.unlink()

        except Exception as e:
            logger.error(f"Error processing {pid_file}: {e}")
            continue

    return killed


def cleanup_stale_bridges():
    """Remove PID files for bridges that no longer exist."""
    for pid_file in get_bridges_dir().glob("bridge_*.json"):
        try:
            with pid_file.open() as f:
                bridge_info = json.load(f)
            psutil.Process(bridge_info["pid"])
        except psutil.NoSuchProcess:
            pid_file.unlink(missing_ok=True)
        except (OSError, KeyError, json.JSONDecodeError):
            # If we can't read the file, consider it stale
            pid_file.unlink(missing_ok=True)


if __name__ == "__main__":
    killed = kill_bridges()
    logger.info(f"Killed {killed} bridge processes")
