from __future__ import annotations

import json
import logging
import platform
import shutil
import subprocess
import time
from datetime import datetime
from typing import Callable

from rich.console import Console

from .models import TimeFormat
from .output import format_time_for_display
from .tracker import PrayerTracker

logger = logging.getLogger(__name__)

RETRY_DELAY_SEC = 60


APP_NAME = "SalaaTime"


def notification_command(title: str, message: str) -> list[str] | None:
    """Desktop notifier invocation for this platform, or None when there is none."""
    system = platform.system()

    if system == "Darwin":
        script = (
            f"display notification {json.dumps(message)} "
            f"with title {json.dumps(APP_NAME)} subtitle {json.dumps(title)}"
        )
        return ["osascript", "-e", script]

    if system == "Linux" and shutil.which("notify-send"):
        return ["notify-send", "--app-name", APP_NAME, "--urgency", "critical", title, message]

    return None


def send_system_notification(title: str, message: str) -> bool:
    command = notification_command(title, message)
    if command is None:
        return False

    result = subprocess.run(
        command,
        stdout=subprocess.DEVNULL,
        stderr=subprocess.DEVNULL,
        check=False,
    )
    if result.returncode != 0:
        logger.debug("%s exited with %s", command[0], result.returncode)
    return result.returncode == 0


def run_notify_daemon(
    console: Console,
    tracker: PrayerTracker,
    time_format: TimeFormat,
    clock: Callable[[], datetime] = datetime.now,
    sleep: Callable[[float], None] = time.sleep,
    max_notifications: int | None = None,
) -> None:
    console.print("[bold green]Notification daemon started.[/bold green] Press Ctrl+C to stop.")
    sent = 0

    while max_notifications is None or sent < max_notifications:
        state = tracker.state_at(clock())
        if not state.has_data:
            console.print(f"[red]No prayer data:[/red] {state.reason}. Retrying in 60 seconds.")
            sleep(RETRY_DELAY_SEC)
            continue

        wait_seconds = max(1, state.time_until_next_ms // 1000)
        next_time_display = format_time_for_display(state.time, time_format)
        console.print(
            f"Waiting for [bold green]{state.label}[/bold green] at {next_time_display} "
            f"({wait_seconds}s)."
        )
        sleep(wait_seconds)

        message = f"It's time for {state.label} ({next_time_display})"
        notified = send_system_notification(state.label, message)
        if not notified:
            logger.debug("Desktop notification unavailable, printing instead")
            console.print(f"[yellow]{message}[/yellow]")
        sent += 1

        # Short pause so small clock drift does not re-trigger the same prayer.
        sleep(2)
