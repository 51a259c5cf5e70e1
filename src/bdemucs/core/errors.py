"""
Exception types for the bdemucs pipeline.

Per-file failures derive from BdemucsError and are recorded in the batch
error log. UnsupportedPlatformError and MissingToolError abort the run.
ShutdownRequested is a BaseException so that per-file handlers never
swallow an interrupt.
"""


class BdemucsError(Exception):
    """Base class for pipeline errors."""


class ProbeError(BdemucsError):
    """ffprobe could not be run or its output could not be parsed."""


class SeparationError(BdemucsError):
    """Demucs failed, or produced none of the instrumental stems."""


class MixdownError(BdemucsError):
    """FFmpeg failed to mix the stems or to remux the tagged output."""


class OutputMoveError(BdemucsError):
    """A finished file or stem folder could not be moved into place."""


class WorkspaceError(BdemucsError):
    """The temporary workspace could not be created or cleaned up."""


class UnsupportedPlatformError(BdemucsError):
    """Temp-directory or core-count detection is not supported on this host."""


class MissingToolError(BdemucsError):
    """A required external command is not on PATH."""


class ShutdownRequested(BaseException):
    """Raised from the signal handler to unwind the current file."""

    def __init__(self, signum: int = None):
        super().__init__(signum)
        self.signum = signum


class UnknownInputError(BdemucsError):
    """A positional argument is neither a file nor a directory."""
