# tinyaudio
# Copyright (C) 2024-2026 Markus Kirsten
# SPDX-License-Identifier: GPL-3.0-or-later
#
# Attribution required — see LICENSE, Section 7(b).

"""
Single-instance election and command forwarding.

The first invocation to claim the well-known bus name becomes the player.
Every later invocation finds the name owned, sends its one command to the
owner, waits for the reply and exits.

    tinyaudio play <uri>    OpenUri
    tinyaudio play          Play
    tinyaudio pause         Pause
    tinyaudio toggle        PlayPause
    tinyaudio stop          Stop
    tinyaudio quit          Quit
"""

import argparse
import logging
from dataclasses import dataclass
from enum import Enum

from .lib.messages import BusError, Request
from .mpris import BUS_NAME, IFACE_PLAYER, IFACE_ROOT, OBJ_PATH

log = logging.getLogger(__name__)


class Role(Enum):
    OWNER = "owner"
    CLIENT = "client"


@dataclass(frozen=True)
class Command:
    """One control command, as sent over the bus."""
    interface: str
    member: str
    uri: str | None = None

    @property
    def signature(self) -> str:
        return "s" if self.uri is not None else ""

    @property
    def args(self) -> tuple:
        return (self.uri,) if self.uri is not None else ()

    def request(self) -> Request:
        return Request(OBJ_PATH, self.interface, self.member, self.args)


_SIMPLE_COMMANDS = {
    "pause": Command(IFACE_PLAYER, "Pause"),
    "toggle": Command(IFACE_PLAYER, "PlayPause"),
    "stop": Command(IFACE_PLAYER, "Stop"),
    "quit": Command(IFACE_ROOT, "Quit"),
}


class _UsageParser(argparse.ArgumentParser):
    """Malformed invocations print usage and exit successfully."""

    def error(self, message):
        self.print_usage()
        self.exit(0, f"{self.prog}: {message}\n")


def build_parser(prog=None) -> argparse.ArgumentParser:
    parser = _UsageParser(
        prog=prog,
        description="Minimal MPRIS audio player. The first invocation becomes "
                    "the player; later ones forward their command to it.",
    )
    sub = parser.add_subparsers(dest="command", required=True, metavar="command")
    play = sub.add_parser("play", help="open URI and play it, or resume playback")
    play.add_argument("uri", nargs="?", help="file path or URL to play")
    sub.add_parser("pause", help="pause playback")
    sub.add_parser("toggle", help="toggle between playing and paused")
    sub.add_parser("stop", help="stop playback")
    sub.add_parser("quit", help="stop the running player")
    return parser


def parse_command(argv=None, prog=None) -> Command:
    args = build_parser(prog).parse_args(argv)
    if args.command == "play":
        if args.uri:
            return Command(IFACE_PLAYER, "OpenUri", args.uri)
        return Command(IFACE_PLAYER, "Play")
    return _SIMPLE_COMMANDS[args.command]


class InstanceCoordinator:
    """Decides whether this process owns the player or forwards to it."""

    def __init__(self, bus, name=BUS_NAME):
        self.bus = bus
        self.name = name

    def elect(self) -> Role:
        """Claim the bus name, or find out who has it.  Raises BusError."""
        if self.bus.name_has_owner(self.name):
            log.info("%s is already running, forwarding", self.name)
            return Role.CLIENT
        if self.bus.request_name(self.name):
            log.info("Acquired %s", self.name)
            return Role.OWNER
        # Another instance claimed the name between our check and our claim
        if self.bus.name_has_owner(self.name):
            log.info("Lost the race for %s, forwarding", self.name)
            return Role.CLIENT
        raise BusError(f"Could not become primary owner of {self.name}")

    def forward(self, command: Command):
        """Send *command* to the owner and wait for its reply."""
        log.debug("Forwarding %s.%s%s", command.interface, command.member, command.args)
        return self.bus.call(self.name, OBJ_PATH, command.interface, command.member,
                             command.signature, command.args)
