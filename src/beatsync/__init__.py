"""BeatSync audio core: WAV codec and tempo estimation.

The package decodes uncompressed RIFF/WAVE files and estimates the tempo of a
track from its low-frequency kick-drum impulses.
"""

__all__ = [
    "config",
    "errors",
    "fourier",
    "library",
    "reader",
    "samples",
    "service",
    "store",
    "tempo",
    "wav",
    "zones",
]

__version__ = "0.1.0"
