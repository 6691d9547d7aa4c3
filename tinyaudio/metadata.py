# tinyaudio
# Copyright (C) 2024-2026 Markus Kirsten
# SPDX-License-Identifier: GPL-3.0-or-later
#
# Attribution required — see LICENSE, Section 7(b).

"""
Translates FFmpeg tag names into the xesam/mpris metadata namespace.

Usage:
    translate([("artist", "A"), ("icy-genre", "Rock")])
    # -> {"xesam:artist": "A", "xesam:genre": "Rock"}
"""

import logging

log = logging.getLogger(__name__)

# Sorted by source tag name
TAG_MAP = {
    "album": "xesam:album",
    "album_artist": "xesam:albumArtist",
    "artist": "xesam:artist",
    "comment": "xesam:comment",
    "composer": "xesam:composer",
    "date": "xesam:contentCreated",
    "disc": "xesam:discNumber",
    "genre": "xesam:genre",
    "title": "xesam:title",
    "track": "xesam:trackNumber",
    "url": "xesam:url",
}

# Internet radio (ICY) tags, only meaningful on the container
STREAM_ALIASES = {
    "StreamTitle": "xesam:title",
    "icy-genre": "xesam:genre",
    "StreamUrl": "mpris:artUrl",
}


def canonical_key(tag: str, aliases: bool = True) -> str | None:
    """Map one source tag name to its canonical key, or None if unmapped."""
    if aliases and tag in STREAM_ALIASES:
        return STREAM_ALIASES[tag]
    return TAG_MAP.get(tag)


def valid_text(value) -> str | None:
    """Return *value* as a string fit for the bus, or None if it is not text.

    Bytes must decode as UTF-8.  Strings must encode as UTF-8 (no lone
    surrogates) and may not contain NUL.
    """
    if isinstance(value, bytes):
        try:
            value = value.decode("utf-8")
        except UnicodeDecodeError:
            return None
    if not isinstance(value, str):
        return None
    try:
        value.encode("utf-8")
    except UnicodeEncodeError:
        return None
    if "\x00" in value:
        return None
    return value


def translate(tags, aliases: bool = True) -> dict[str, str]:
    """Translate (name, value) pairs.  Unmapped tags are dropped silently,
    invalid text is dropped with a warning.  Never raises on bad values."""
    out = {}
    for tag, value in tags:
        key = canonical_key(tag, aliases)
        if key is None:
            continue
        text = valid_text(value)
        if text is None:
            log.warning("Dropping tag %r: value is not valid text", tag)
            continue
        out[key] = text
    return out
