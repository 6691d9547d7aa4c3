# tinyaudio
# Copyright (C) 2024-2026 Markus Kirsten
# SPDX-License-Identifier: GPL-3.0-or-later
#
# Attribution required — see LICENSE, Section 7(b).

"""
Raw PCM output via PortAudio (sounddevice).

The sink is opened once per owning process and takes interleaved signed
16-bit frames, exactly what ``Pipeline.decode()`` produces.  Writes block
until the device has room, which paces the streaming loop.

Usage:
    sink = AudioSink(sample_rate=44100, channels=2, device=None)
    sink.open()
    sink.write(pcm_bytes)
    sink.close()
"""

import logging

log = logging.getLogger(__name__)


class AudioSink:
    """Blocking int16 output stream on the configured device."""

    def __init__(self, sample_rate=44100, channels=2, device=None):
        self.sample_rate = sample_rate
        self.channels = channels
        self.device = device
        self._stream = None

    @property
    def is_open(self):
        return self._stream is not None

    def open(self):
        """Open and start the output stream.  Raises OSError on failure."""
        import sounddevice as sd

        try:
            stream = sd.RawOutputStream(
                samplerate=self.sample_rate,
                channels=self.channels,
                dtype="int16",
                device=self.device,
            )
            stream.start()
        except sd.PortAudioError as e:
            raise OSError(f"Cannot open audio output: {e}") from e
        self._stream = stream
        log.info("Audio output open (%d Hz, %d ch, device=%s)",
                 self.sample_rate, self.channels, self.device or "default")

    def write(self, data: bytes):
        if self._stream is None:
            return
        try:
            underflow = self._stream.write(data)
        except Exception as e:
            log.error("Audio write failed: %s", e)
            return
        if underflow:
            log.debug("Audio output underflow")

    def close(self):
        if self._stream is None:
            return
        try:
            self._stream.stop()
            self._stream.close()
        except Exception as e:
            log.warning("Error closing audio output: %s", e)
        self._stream = None
        log.info("Audio output closed")
