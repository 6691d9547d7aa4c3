# tinyaudio
# Copyright (C) 2024-2026 Markus Kirsten
# SPDX-License-Identifier: GPL-3.0-or-later
#
# Attribution required — see LICENSE, Section 7(b).

"""
Session bus transport built on dbus-python and the GLib main context.

No GLib main loop ever runs.  Instead ``pump()`` performs non-blocking
iterations of the default main context, which lets libdbus read the socket
and hand every method call to our message filter.  The streaming loop calls
``pump()`` once per iteration, so bus traffic and audio share one thread.

Usage:
    bus = SessionBus()
    if not bus.name_has_owner(BUS_NAME):
        bus.request_name(BUS_NAME)
        bus.listen()
        for request in bus.pump():
            bus.send_reply(request, Reply())
    else:
        bus.call(BUS_NAME, OBJ_PATH, IFACE_PLAYER, "Pause")
"""

import logging
from collections import deque

import dbus
import dbus.bus
import dbus.lowlevel
from dbus.mainloop.glib import DBusGMainLoop
from gi.repository import GLib

from .messages import BusError, Fault, Reply, Request, Variant

log = logging.getLogger(__name__)

IFACE_PROPERTIES = "org.freedesktop.DBus.Properties"


def to_dbus(signature: str, value, variant_level: int = 0):
    """Convert a plain value of one complete *signature* to dbus-python types.

    Variants are ``Variant`` tuples; their payload is converted recursively
    with the variant level raised by one.
    """
    if signature == "v":
        if not isinstance(value, Variant):
            raise ValueError(f"Expected Variant, got {type(value).__name__}")
        return to_dbus(value.signature, value.value, variant_level + 1)
    if signature == "b":
        return dbus.Boolean(value, variant_level=variant_level)
    if signature == "s":
        return dbus.String(value, variant_level=variant_level)
    if signature == "o":
        return dbus.ObjectPath(value, variant_level=variant_level)
    if signature == "d":
        return dbus.Double(value, variant_level=variant_level)
    if signature == "x":
        return dbus.Int64(value, variant_level=variant_level)
    if signature == "as":
        return dbus.Array([dbus.String(v) for v in value], signature="s",
                          variant_level=variant_level)
    if signature == "a{sv}":
        return dbus.Dictionary({dbus.String(k): to_dbus("v", v) for k, v in value.items()},
                               signature="sv", variant_level=variant_level)
    raise ValueError(f"Unsupported signature {signature!r}")


def marshal(signature: str, values) -> list:
    """Convert a whole argument list.  Nothing is appended to a message until
    every value converted, so a failure never leaves a half-built reply."""
    types = list(dbus.Signature(signature))
    if len(types) != len(values):
        raise ValueError(f"Signature {signature!r} does not match {len(values)} values")
    return [to_dbus(t, v) for t, v in zip(types, values)]


class SessionBus:
    """Private session bus connection driven by explicit pumping."""

    def __init__(self):
        try:
            self._bus = dbus.SessionBus(mainloop=DBusGMainLoop(), private=True)
        except dbus.exceptions.DBusException as e:
            raise BusError(f"Failed to connect to session bus: {e}") from e
        self._bus.set_exit_on_disconnect(False)
        self._context = GLib.MainContext.default()
        self._queue: deque[Request] = deque()
        self._listening = False

    # ── Names ──

    def name_has_owner(self, name: str) -> bool:
        try:
            return bool(self._bus.name_has_owner(name))
        except dbus.exceptions.DBusException as e:
            raise BusError(f"NameHasOwner failed: {e}") from e

    def request_name(self, name: str) -> bool:
        """Claim *name* without queueing.  True if we are now primary owner."""
        try:
            ret = self._bus.request_name(name, dbus.bus.NAME_FLAG_DO_NOT_QUEUE)
        except dbus.exceptions.DBusException as e:
            raise BusError(f"RequestName failed: {e}") from e
        return ret == dbus.bus.REQUEST_NAME_REPLY_PRIMARY_OWNER

    # ── Client side ──

    def call(self, name, path, interface, member, signature="", args=()):
        """Blocking method call.  Returns the reply arguments."""
        msg = dbus.lowlevel.MethodCallMessage(name, path, interface, member)
        if args:
            msg.append(*args, signature=signature)
        try:
            reply = self._bus.send_message_with_reply_and_block(msg, -1)
        except dbus.exceptions.DBusException as e:
            raise BusError(f"{member} call failed: {e}") from e
        return reply.get_args_list()

    # ── Server side ──

    def listen(self):
        """Start collecting incoming method calls for ``pump()``."""
        if not self._listening:
            self._bus.add_message_filter(self._filter)
            self._listening = True

    def _filter(self, connection, message):
        if not isinstance(message, dbus.lowlevel.MethodCallMessage):
            return dbus.lowlevel.HANDLER_RESULT_NOT_YET_HANDLED
        self._queue.append(Request(
            path=message.get_path(),
            interface=message.get_interface(),
            member=message.get_member(),
            args=tuple(message.get_args_list()),
            handle=message,
        ))
        return dbus.lowlevel.HANDLER_RESULT_HANDLED

    def pump(self) -> list[Request]:
        """Read and dispatch whatever the socket holds, without blocking.
        Returns the queued method calls in delivery order."""
        while self._context.pending():
            self._context.iteration(False)
        if not self._bus.get_is_connected():
            raise BusError("DBus connection closed")
        requests = list(self._queue)
        self._queue.clear()
        return requests

    def send_reply(self, request: Request, reply: Reply | Fault):
        call = request.handle
        if call is None or call.get_no_reply():
            return
        if isinstance(reply, Fault):
            message = dbus.lowlevel.ErrorMessage(call, reply.name, reply.message)
        else:
            try:
                values = marshal(reply.signature, reply.values)
            except (ValueError, TypeError) as e:
                log.error("Cannot marshal reply to %s: %s", request.member, e)
                message = dbus.lowlevel.ErrorMessage(call, Fault.name, str(e))
            else:
                message = dbus.lowlevel.MethodReturnMessage(call)
                if values:
                    message.append(*values, signature=reply.signature)
        self._send(message)

    def emit_properties_changed(self, path: str, interface: str, changed: dict[str, Variant]):
        try:
            values = marshal("sa{sv}as", (interface, changed, []))
        except (ValueError, TypeError) as e:
            log.error("Cannot marshal PropertiesChanged: %s", e)
            return
        signal = dbus.lowlevel.SignalMessage(path, IFACE_PROPERTIES, "PropertiesChanged")
        signal.append(*values, signature="sa{sv}as")
        self._send(signal)
        log.debug("PropertiesChanged %s", ", ".join(changed))

    def _send(self, message):
        if not self._bus.send_message(message):
            raise BusError("Out of memory sending message")
        self._bus.flush()

    def close(self):
        try:
            self._bus.close()
        except dbus.exceptions.DBusException as e:
            log.debug("Error closing bus: %s", e)
