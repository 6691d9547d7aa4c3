# tinyaudio
# Copyright (C) 2024-2026 Markus Kirsten
# SPDX-License-Identifier: GPL-3.0-or-later
#
# Attribution required — see LICENSE, Section 7(b).

"""tinyaudio — a single-instance MPRIS audio player."""

__version__ = "0.1.0"
