# tinyaudio
# Copyright (C) 2024-2026 Markus Kirsten
# SPDX-License-Identifier: GPL-3.0-or-later
#
# Attribution required — see LICENSE, Section 7(b).

"""systemd notify support for the owning player.

Sends READY/WATCHDOG/STATUS/STOPPING messages to the systemd notify socket.
Silently no-ops when NOTIFY_SOCKET is unset (started from a shell).

Usage:
    from .lib.watchdog import watchdog_loop, notify_status, notify_stopping
    asyncio.create_task(watchdog_loop())
    notify_status("Playing")
"""

import asyncio
import logging
import os
import socket

logger = logging.getLogger(__name__)


def sd_notify(msg: str) -> bool:
    """Send a notification to the systemd notify socket.  True if sent."""
    addr = os.environ.get("NOTIFY_SOCKET")
    if not addr:
        return False
    if addr[0] == "@":
        addr = "\0" + addr[1:]
    sock = socket.socket(socket.AF_UNIX, socket.SOCK_DGRAM)
    try:
        sock.sendto(msg.encode(), addr)
    except OSError as e:
        logger.debug("sd_notify(%s) failed: %s", msg, e)
        return False
    finally:
        sock.close()
    return True


def notify_status(status: str):
    sd_notify(f"STATUS={status}")


def notify_stopping():
    sd_notify("STOPPING=1")


def watchdog_interval(default: float = 20) -> float:
    """Half of WATCHDOG_USEC when systemd sets it, else *default* seconds."""
    usec = os.environ.get("WATCHDOG_USEC")
    if usec and usec.isdigit() and int(usec) > 0:
        return int(usec) / 2_000_000
    return default


async def watchdog_loop(interval: float | None = None):
    """Send READY=1 once, then WATCHDOG=1 every *interval* seconds.

    Runs on the same event loop as the player, so a stalled streaming loop
    also stalls the heartbeat and systemd restarts the service.
    """
    interval = interval or watchdog_interval()
    sd_notify("READY=1")
    logger.info("Watchdog started (interval=%ss)", interval)
    while True:
        sd_notify("WATCHDOG=1")
        await asyncio.sleep(interval)
