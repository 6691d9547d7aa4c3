# tinyaudio
# Copyright (C) 2024-2026 Markus Kirsten
# SPDX-License-Identifier: GPL-3.0-or-later
#
# Attribution required — see LICENSE, Section 7(b).

"""
Configuration loader for tinyaudio.

Loads a single JSON config file.  Search order:
  1. $TINYAUDIO_CONFIG                  (explicit override)
  2. /etc/tinyaudio/config.json         (system-wide)
  3. ~/.config/tinyaudio/config.json    (per user)
  4. config.json                        (CWD — handy for local dev)

Every key is optional; callers always pass a default.

Usage:
    from .lib.config import cfg

    identity   = cfg("player", "identity", default="tinyaudio")
    threshold  = cfg("player", "fault_threshold", default=5)
    rate       = cfg("audio", "sample_rate", default=44100)
    device     = cfg("audio", "device")
"""

import json
import logging
import os

logger = logging.getLogger(__name__)

_config: dict | None = None


def _search_paths() -> list[str]:
    paths = []
    override = os.environ.get("TINYAUDIO_CONFIG")
    if override:
        paths.append(override)
    paths += [
        "/etc/tinyaudio/config.json",
        os.path.join(os.path.expanduser("~"), ".config", "tinyaudio", "config.json"),
        "config.json",
    ]
    return paths


def _section(config: dict, name: str, path: str) -> dict:
    value = config.get(name)
    if value is None:
        return {}
    if not isinstance(value, dict):
        logger.warning("Config %s: %s must be an object, its keys are ignored", path, name)
        return {}
    return value


def _validate(config: dict, path: str) -> None:
    """Warn about suspicious config values."""
    player = _section(config, "player", path)
    threshold = player.get("fault_threshold")
    if threshold is not None and (not isinstance(threshold, int) or threshold < 1):
        logger.warning("Config %s: player.fault_threshold must be a positive integer", path)
    interval = player.get("idle_interval")
    if interval is not None and (not isinstance(interval, (int, float)) or not 0 <= interval <= 5):
        logger.warning("Config %s: player.idle_interval should be between 0 and 5 seconds", path)
    audio = _section(config, "audio", path)
    if audio.get("channels") not in (None, 1, 2):
        logger.warning("Config %s: audio.channels must be 1 or 2", path)
    level = _section(config, "log", path).get("level")
    if level is not None and str(level).upper() not in logging.getLevelNamesMapping():
        logger.warning("Config %s: unknown log.level '%s'", path, level)


def _read(path: str) -> dict | None:
    """Parse one candidate file.  None if it is missing or unusable."""
    try:
        with open(path) as f:
            data = json.load(f)
    except FileNotFoundError:
        return None
    except json.JSONDecodeError as e:
        logger.error("Invalid JSON in %s: %s", path, e)
        return None
    if not isinstance(data, dict):
        logger.error("Config %s must be a JSON object, ignoring it", path)
        return None
    return data


def load_config() -> dict:
    """Return the first usable config file's contents, cached after first call."""
    global _config
    if _config is None:
        _config = {}
        for path in _search_paths():
            data = _read(path)
            if data is not None:
                logger.info("Config loaded from %s", path)
                _validate(data, path)
                _config = data
                break
        else:
            logger.debug("No tinyaudio config found, using defaults")
    return _config


def cfg(section: str, key: str | None = None, *, default=None):
    """Read one config value, or a whole section when *key* is omitted.

    cfg("audio")                                  -> the audio section, or None
    cfg("audio", "device")                        -> output device, or None
    cfg("player", "fault_threshold", default=5)   -> 5 unless configured

    A section that is not a JSON object yields *default* for every key.
    """
    section_value = load_config().get(section)
    if key is None:
        return default if section_value is None else section_value
    if not isinstance(section_value, dict):
        return default
    return section_value.get(key, default)


def reload_config():
    """Force re-read from disk (for testing or hot-reload)."""
    global _config
    _config = None
    return load_config()
