# tinyaudio
# Copyright (C) 2024-2026 Markus Kirsten
# SPDX-License-Identifier: GPL-3.0-or-later
#
# Attribution required — see LICENSE, Section 7(b).

"""
Decode pipeline built on PyAV (FFmpeg).

A ``Pipeline`` bundles the open container, the selected audio stream and a
resampler that converts every decoded frame to interleaved signed 16-bit PCM
at the output rate.  One pipeline exists per opened source.

Usage:
    backend = DecodeBackend(sample_rate=44100, channels=2)
    pipeline = backend.open("https://example.com/stream.mp3")
    packet = pipeline.read()            # EndOfStream / StreamReadError
    for pcm in pipeline.decode(packet):
        sink.write(pcm)
    pipeline.close()
"""

import logging
import mimetypes

import av

log = logging.getLogger(__name__)

SAMPLE_RATE = 44100
CHANNELS = 2

# Protocols compiled into the FFmpeg builds that PyAV wheels ship with.
# PyAV has no binding for avio_enum_protocols().
URI_SCHEMES = (
    "file", "ftp", "gopher", "hls", "http", "https", "icecast", "mmsh",
    "mmst", "pipe", "rtmp", "rtmps", "rtp", "rtsp", "srtp", "tcp", "tls", "udp",
)

_LAYOUTS = {1: "mono", 2: "stereo"}


class MediaOpenError(Exception):
    """The source could not be opened for audio playback."""


class StreamReadError(Exception):
    """Transient failure reading the next packet."""


class EndOfStream(Exception):
    """The source has no more data."""


class Pipeline:
    """Open decode/resample context bound to one media source."""

    def __init__(self, uri, container, stream, resampler):
        self.uri = uri
        self.container = container
        self.stream = stream
        self.resampler = resampler
        self.position = 0  # microseconds, last decoded frame
        self._packets = container.demux(stream)

    def read(self):
        """Read one packet of the selected stream."""
        try:
            packet = next(self._packets)
        except StopIteration:
            raise EndOfStream(self.uri) from None
        except av.error.EOFError as e:
            raise EndOfStream(self.uri) from e
        except (av.error.FFmpegError, OSError) as e:
            # A failed demux generator is exhausted; the container keeps its
            # read position so a fresh one continues where this one stopped.
            self._packets = self.container.demux(self.stream)
            raise StreamReadError(str(e)) from e
        return packet

    def decode(self, packet) -> list[bytes]:
        """Decode *packet* and return the resampled PCM chunks."""
        if packet.stream_index != self.stream.index:
            return []
        try:
            frames = packet.decode()
        except av.error.FFmpegError as e:
            log.warning("Decode error in %s: %s", self.uri, e)
            return []

        chunks = []
        for frame in frames:
            if frame.time is not None:
                self.position = max(self.position, int(frame.time * 1_000_000))
            for out in self.resampler.resample(frame):
                chunks.append(out.to_ndarray().tobytes())
        return chunks

    def tags(self):
        """Return (container tags, stream tags) as lists of (name, value).

        PyAV reads both dictionaries once, when the source is opened, so these
        are the tags the source announced up front.
        """
        return list(self.container.metadata.items()), list(self.stream.metadata.items())

    def pause(self):
        """Suspend the read cursor.  The streaming loop stops calling read()
        while paused; PyAV has no binding for av_read_pause()."""
        log.debug("Read cursor suspended: %s", self.uri)

    def resume(self):
        log.debug("Read cursor resumed: %s", self.uri)

    def close(self):
        try:
            self.container.close()
        except (av.error.FFmpegError, OSError) as e:
            log.warning("Error closing %s: %s", self.uri, e)


class DecodeBackend:
    """Opens pipelines and reports what the FFmpeg build can play."""

    def __init__(self, sample_rate=SAMPLE_RATE, channels=CHANNELS):
        self.sample_rate = sample_rate
        self.channels = channels

    def open(self, uri: str) -> Pipeline:
        try:
            container = av.open(uri)
        except (av.error.FFmpegError, OSError) as e:
            raise MediaOpenError(f"Failed to open {uri}: {e}") from e

        try:
            stream = container.streams.best("audio")
            if stream is None:
                raise MediaOpenError(f"No audio stream present in {uri}")
            if stream.codec_context is None:
                raise MediaOpenError(f"No decoder for {uri}")
            resampler = av.AudioResampler(
                format="s16",
                layout=_LAYOUTS.get(self.channels, "stereo"),
                rate=self.sample_rate,
            )
        except MediaOpenError:
            container.close()
            raise
        except (av.error.FFmpegError, OSError, ValueError) as e:
            container.close()
            raise MediaOpenError(f"Failed to open decoder for {uri}: {e}") from e

        log.info("Opened %s (%s, %d Hz)", uri, stream.codec_context.name,
                 stream.codec_context.sample_rate or 0)
        return Pipeline(uri, container, stream, resampler)

    def supported_schemes(self) -> list[str]:
        return list(URI_SCHEMES)

    def supported_mime_types(self) -> list[str]:
        """Audio MIME types for every demuxer extension FFmpeg knows."""
        types = set()
        for name in av.formats_available:
            try:
                fmt = av.ContainerFormat(name, "r")
            except ValueError:
                continue
            for ext in fmt.extensions:
                mime, _ = mimetypes.guess_type(f"file.{ext}")
                if mime and mime.startswith("audio/"):
                    types.add(mime)
        return sorted(types)
