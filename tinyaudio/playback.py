# tinyaudio
# Copyright (C) 2024-2026 Markus Kirsten
# SPDX-License-Identifier: GPL-3.0-or-later
#
# Attribution required — see LICENSE, Section 7(b).

"""
Playback state machine.

Owns the playback status, the last requested source and the one live
pipeline.  Invariant: PLAYING and PAUSED always have a pipeline, STOPPED and
QUITTING never do.

    STOPPED --play--> PLAYING <--play/pause--> PAUSED
       ^                 |                       |
       +------stop / end of stream / faults------+
    any --quit--> QUITTING (terminal)
"""

import logging
from enum import Enum

from .lib.pipeline import MediaOpenError

log = logging.getLogger(__name__)

FAULT_THRESHOLD = 5


class PlaybackStatus(Enum):
    PLAYING = "Playing"
    PAUSED = "Paused"
    STOPPED = "Stopped"
    QUITTING = "Quitting"


class PlaybackState:
    """Status, source and pipeline of the owning player."""

    def __init__(self, backend, fault_threshold=FAULT_THRESHOLD):
        self.backend = backend
        self.fault_threshold = fault_threshold
        self.status = PlaybackStatus.STOPPED
        self.source: str | None = None
        self.pipeline = None
        self.track = 0  # bumped for every opened pipeline
        self.faults = 0
        self._last_position = 0

    @property
    def mpris_status(self) -> str:
        """PlaybackStatus as the bus reports it."""
        if self.status is PlaybackStatus.QUITTING:
            return PlaybackStatus.STOPPED.value
        return self.status.value

    @property
    def position(self) -> int:
        return self.pipeline.position if self.pipeline else self._last_position

    @property
    def quitting(self) -> bool:
        return self.status is PlaybackStatus.QUITTING

    def _set(self, status):
        if status is not self.status:
            log.info("Playback %s -> %s", self.status.value, status.value)
            self.status = status

    def _teardown(self):
        if self.pipeline is not None:
            self._last_position = self.pipeline.position
            self.pipeline.close()
            self.pipeline = None
        self.faults = 0

    def _open(self, uri):
        self.pipeline = self.backend.open(uri)
        self.track += 1
        self._last_position = 0
        self._set(PlaybackStatus.PLAYING)

    # ── Commands ──

    def open_uri(self, uri: str):
        """Replace whatever is playing with *uri*.  Raises MediaOpenError;
        on failure the player is left stopped with no pipeline."""
        if self.quitting:
            return
        self._teardown()
        try:
            self._open(uri)
        except MediaOpenError:
            self._set(PlaybackStatus.STOPPED)
            raise
        self.source = uri

    def play(self):
        if self.status is PlaybackStatus.PAUSED:
            self.pipeline.resume()
            self._set(PlaybackStatus.PLAYING)
        elif self.status is PlaybackStatus.STOPPED:
            if self.source is None:
                log.debug("Play ignored: no source")
                return
            self._open(self.source)

    def pause(self):
        if self.status is PlaybackStatus.PLAYING:
            self.pipeline.pause()
            self._set(PlaybackStatus.PAUSED)

    def play_pause(self):
        if self.status is PlaybackStatus.PLAYING:
            self.pause()
        else:
            self.play()

    def stop(self):
        if self.status in (PlaybackStatus.PLAYING, PlaybackStatus.PAUSED):
            self._teardown()
            self._set(PlaybackStatus.STOPPED)

    def quit(self):
        self._teardown()
        self._set(PlaybackStatus.QUITTING)

    # ── Stream events (from the streaming loop) ──

    def end_of_stream(self):
        if self.status is PlaybackStatus.PLAYING:
            log.info("End of stream: %s", self.source)
            self._teardown()
            self._set(PlaybackStatus.STOPPED)

    def stream_fault(self, error) -> bool:
        """Count a transient read fault.  Returns True if it stopped playback."""
        self.faults += 1
        if self.faults < self.fault_threshold:
            log.warning("Stream read fault %d/%d: %s",
                        self.faults, self.fault_threshold, error)
            return False
        log.error("Stream failed %d times in a row, stopping: %s", self.faults, error)
        self._teardown()
        self._set(PlaybackStatus.STOPPED)
        return True

    def stream_ok(self):
        self.faults = 0

    def close(self):
        """Release the pipeline on process exit."""
        self._teardown()
