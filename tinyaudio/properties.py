# tinyaudio
# Copyright (C) 2024-2026 Markus Kirsten
# SPDX-License-Identifier: GPL-3.0-or-later
#
# Attribution required — see LICENSE, Section 7(b).

"""
Property tables for the root and player interfaces.

Each interface has one table, built once and sorted by name.  An entry binds
a property name and its D-Bus type to a getter, so static answers and live
values (status, position, metadata, backend capabilities) look the same to
the dispatcher.
"""

import logging
from bisect import bisect_left
from dataclasses import dataclass
from typing import Any, Callable

from .lib.messages import UnknownInterface, UnknownProperty, Variant
from .metadata import translate
from .mpris import IFACE_PLAYER, IFACE_ROOT, NO_TRACK, TRACK_PATH_PREFIX

log = logging.getLogger(__name__)


def const(value):
    return lambda: value


@dataclass(frozen=True)
class PropertyEntry:
    name: str
    signature: str
    getter: Callable[[], Any]
    writable: bool = False

    def variant(self) -> Variant:
        return Variant(self.signature, self.getter())


class PropertyTable:
    """Immutable name-sorted table with binary-search lookup."""

    def __init__(self, entries):
        self._entries = tuple(sorted(entries, key=lambda e: e.name))
        self._names = [e.name for e in self._entries]

    def __iter__(self):
        return iter(self._entries)

    def __len__(self):
        return len(self._entries)

    def find(self, name: str) -> PropertyEntry | None:
        i = bisect_left(self._names, name)
        if i < len(self._names) and self._names[i] == name:
            return self._entries[i]
        return None


class PropertyRegistry:
    """Root and player property tables bound to one player state."""

    def __init__(self, state, backend, identity="tinyaudio", desktop_entry="tinyaudio"):
        self.state = state
        self.backend = backend
        self.tables = {
            IFACE_ROOT: PropertyTable([
                PropertyEntry("CanQuit", "b", const(True)),
                PropertyEntry("CanRaise", "b", const(False)),
                PropertyEntry("CanSetFullscreen", "b", const(False)),
                PropertyEntry("DesktopEntry", "s", const(desktop_entry)),
                PropertyEntry("Fullscreen", "b", const(False)),
                PropertyEntry("HasTrackList", "b", const(False)),
                PropertyEntry("Identity", "s", const(identity)),
                PropertyEntry("SupportedMimeTypes", "as", backend.supported_mime_types),
                PropertyEntry("SupportedUriSchemes", "as", backend.supported_schemes),
            ]),
            IFACE_PLAYER: PropertyTable([
                PropertyEntry("CanControl", "b", const(True)),
                PropertyEntry("CanGoNext", "b", const(False)),
                PropertyEntry("CanGoPrevious", "b", const(False)),
                PropertyEntry("CanPause", "b", const(True)),
                PropertyEntry("CanPlay", "b", const(True)),
                PropertyEntry("CanSeek", "b", const(False)),
                PropertyEntry("LoopStatus", "s", const("None"), writable=True),
                PropertyEntry("MaximumRate", "d", const(1.0)),
                PropertyEntry("Metadata", "a{sv}", self.metadata),
                PropertyEntry("MinimumRate", "d", const(1.0)),
                PropertyEntry("PlaybackStatus", "s", lambda: state.mpris_status),
                PropertyEntry("Position", "x", lambda: state.position),
                PropertyEntry("Rate", "d", const(1.0), writable=True),
                PropertyEntry("Shuffle", "b", const(False), writable=True),
                PropertyEntry("Volume", "d", const(1.0), writable=True),
            ]),
        }

    def table(self, interface: str) -> PropertyTable:
        try:
            return self.tables[interface]
        except KeyError:
            raise UnknownInterface("No such interface") from None

    def entry(self, interface: str, name: str) -> PropertyEntry:
        entry = self.table(interface).find(name)
        if entry is None:
            raise UnknownProperty("No such property")
        return entry

    def get(self, interface: str, name: str) -> Variant:
        return self.entry(interface, name).variant()

    def get_all(self, interface: str) -> dict[str, Variant]:
        return {e.name: e.variant() for e in self.table(interface)}

    def set(self, interface: str, name: str, value):
        """Accept writes to the writable player properties; they change nothing."""
        entry = self.entry(interface, name)
        if not entry.writable:
            raise UnknownProperty("No such property")
        log.debug("Ignoring Set %s.%s = %r", interface, name, value)

    def metadata(self) -> dict[str, Variant]:
        pipeline = self.state.pipeline
        if pipeline is None:
            return {"mpris:trackid": Variant("o", NO_TRACK)}

        container_tags, stream_tags = pipeline.tags()
        values = translate(stream_tags, aliases=False)
        values.update(translate(container_tags))
        out = {"mpris:trackid": Variant("o", f"{TRACK_PATH_PREFIX}{self.state.track}")}
        for key, text in values.items():
            out[key] = Variant("s", text)
        return out
