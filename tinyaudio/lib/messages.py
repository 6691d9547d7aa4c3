# tinyaudio
# Copyright (C) 2024-2026 Markus Kirsten
# SPDX-License-Identifier: GPL-3.0-or-later
#
# Attribution required — see LICENSE, Section 7(b).

"""
Transport-neutral message types shared by the dispatcher and the bus adapter.

The dispatcher never touches bus library objects.  It receives a ``Request``,
and answers with either a ``Reply`` or a ``Fault``.  Values that travel inside
a variant are wrapped in ``Variant`` so the adapter knows their wire type.

Usage:
    req = Request("/org/mpris/MediaPlayer2", "org.mpris.MediaPlayer2.Player", "Play")
    reply = Reply()                              # empty method return
    reply = Reply("v", (Variant("s", "Playing"),))
    fault = UnknownProperty("No such property")  # also a valid reply
"""

from dataclasses import dataclass, field
from typing import Any, NamedTuple


class Variant(NamedTuple):
    """A value tagged with its D-Bus type signature."""
    signature: str
    value: Any


@dataclass
class Request:
    """One incoming method call."""
    path: str
    interface: str
    member: str
    args: tuple = ()
    # Opaque transport object the reply must be addressed to
    handle: Any = field(default=None, repr=False, compare=False)


@dataclass
class Reply:
    """Successful method return: a signature and the matching values."""
    signature: str = ""
    values: tuple = ()


class BusError(Exception):
    """The bus is unreachable, a name could not be claimed or a call failed."""


ERROR_PREFIX = "org.freedesktop.DBus.Error."
PLAYER_ERROR_PREFIX = "org.mpris.MediaPlayer2.tinyaudio.Error."


class Fault(Exception):
    """Typed error reply.  Raised inside handlers, returned to the caller."""

    name = PLAYER_ERROR_PREFIX + "Failed"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __eq__(self, other):
        if not isinstance(other, Fault):
            return NotImplemented
        return (self.name, self.message) == (other.name, other.message)

    def __hash__(self):
        return hash((self.name, self.message))

    def __repr__(self):
        return f"{type(self).__name__}({self.message!r})"


class UnknownObject(Fault):
    name = ERROR_PREFIX + "UnknownObject"


class UnknownInterface(Fault):
    name = ERROR_PREFIX + "UnknownInterface"


class UnknownMethod(Fault):
    name = ERROR_PREFIX + "UnknownMethod"


class UnknownProperty(Fault):
    name = ERROR_PREFIX + "UnknownProperty"


class InvalidArgs(Fault):
    name = ERROR_PREFIX + "InvalidArgs"


class OpenFailed(Fault):
    name = PLAYER_ERROR_PREFIX + "OpenFailed"
