# tinyaudio
# Copyright (C) 2024-2026 Markus Kirsten
# SPDX-License-Identifier: GPL-3.0-or-later
#
# Attribution required — see LICENSE, Section 7(b).

"""
Routes method calls on /org/mpris/MediaPlayer2.

Every request is answered with exactly one Reply or Fault.  Protocol faults never
mutate state, and a failing handler never takes the player down.

After each call the dispatcher diffs the externally visible state against a
snapshot taken before it, and hands back the changed player properties so
the caller can broadcast one PropertiesChanged signal:

    reply, changed = dispatcher.dispatch(request)
    bus.send_reply(request, reply)
    if changed:
        bus.emit_properties_changed(OBJ_PATH, IFACE_PLAYER, changed)
"""

import logging

from .lib.messages import (
    Fault, InvalidArgs, OpenFailed, Reply, Request, UnknownMethod,
    UnknownObject, Variant,
)
from .lib.pipeline import MediaOpenError
from .mpris import (
    IFACE_INTROSPECTABLE, IFACE_PLAYER, IFACE_PROPERTIES, IFACE_ROOT,
    INTROSPECT_XML, OBJ_PATH,
)

log = logging.getLogger(__name__)


def _expect(args, *types):
    """Check the argument shape of a call, raising InvalidArgs."""
    if len(args) != len(types) or not all(
            t is object or isinstance(a, t) for a, t in zip(args, types)):
        names = ", ".join(t.__name__ for t in types) or "no arguments"
        raise InvalidArgs(f"Expected ({names})")
    return args


class Dispatcher:
    """Maps (interface, member) to handlers over one player state."""

    def __init__(self, state, registry):
        self.state = state
        self.registry = registry
        self._methods = {
            (IFACE_ROOT, "Quit"): self._quit,
            (IFACE_ROOT, "Raise"): self._raise,
            (IFACE_PLAYER, "Play"): self._play,
            (IFACE_PLAYER, "Pause"): self._pause,
            (IFACE_PLAYER, "PlayPause"): self._play_pause,
            (IFACE_PLAYER, "Stop"): self._stop,
            (IFACE_PLAYER, "OpenUri"): self._open_uri,
            (IFACE_PROPERTIES, "Get"): self._get,
            (IFACE_PROPERTIES, "Set"): self._set,
            (IFACE_PROPERTIES, "GetAll"): self._get_all,
            (IFACE_INTROSPECTABLE, "Introspect"): self._introspect,
        }

    # ── Change tracking ──

    def snapshot(self):
        state = self.state
        return state.mpris_status, (state.track if state.pipeline else None)

    def changes_since(self, before) -> dict[str, Variant]:
        """Player properties that differ from *before* (a snapshot())."""
        status, track = self.snapshot()
        changed = {}
        if status != before[0]:
            changed["PlaybackStatus"] = Variant("s", status)
        if track != before[1]:
            changed["Metadata"] = Variant("a{sv}", self.registry.metadata())
        return changed

    # ── Dispatch ──

    def _resolve(self, interface, member):
        if interface:
            return self._methods.get((interface, member))
        # Calls without an interface match the first method of that name
        for (_, name), handler in self._methods.items():
            if name == member:
                return handler
        return None

    def dispatch(self, request: Request):
        """Handle one call.  Returns (reply or fault, changed properties)."""
        if request.path != OBJ_PATH:
            return UnknownObject(f"No such object {request.path}"), {}

        handler = self._resolve(request.interface, request.member)
        if handler is None:
            fault = UnknownMethod(
                f"Invalid interface or method {request.interface}.{request.member}")
            log.debug("%s", fault)
            return fault, {}

        before = self.snapshot()
        try:
            reply = handler(request.args)
        except Fault as fault:
            log.debug("%s.%s -> %s", request.interface, request.member, fault.name)
            reply = fault
        except Exception:
            log.exception("Unhandled error in %s.%s", request.interface, request.member)
            reply = Fault(f"Internal error handling {request.member}")
        return reply, self.changes_since(before)

    # ── Root ──

    def _quit(self, args):
        _expect(args)
        log.info("Quit requested")
        self.state.quit()
        return Reply()

    def _raise(self, args):
        _expect(args)
        return Reply()

    # ── Player ──

    def _play(self, args):
        _expect(args)
        try:
            self.state.play()
        except MediaOpenError as e:
            log.error("%s", e)
            raise OpenFailed(str(e)) from e
        return Reply()

    def _pause(self, args):
        _expect(args)
        self.state.pause()
        return Reply()

    def _play_pause(self, args):
        _expect(args)
        try:
            self.state.play_pause()
        except MediaOpenError as e:
            log.error("%s", e)
            raise OpenFailed(str(e)) from e
        return Reply()

    def _stop(self, args):
        _expect(args)
        self.state.stop()
        return Reply()

    def _open_uri(self, args):
        uri, = _expect(args, str)
        try:
            self.state.open_uri(uri)
        except MediaOpenError as e:
            log.error("%s", e)
            raise OpenFailed(str(e)) from e
        return Reply()

    # ── Properties ──

    def _get(self, args):
        interface, name = _expect(args, str, str)
        return Reply("v", (self.registry.get(interface, name),))

    def _set(self, args):
        interface, name, value = _expect(args, str, str, object)
        self.registry.set(interface, name, value)
        return Reply()

    def _get_all(self, args):
        interface, = _expect(args, str)
        return Reply("a{sv}", (self.registry.get_all(interface),))

    def _introspect(self, args):
        _expect(args)
        return Reply("s", (INTROSPECT_XML,))
