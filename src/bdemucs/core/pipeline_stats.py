"""
Pipeline Statistics for bdemucs

Timing for the separation step and the per-file / per-batch results the
driver merges into its error log.

Usage:
    from bdemucs.core.pipeline_stats import TimingStats, BatchResult

    timing = TimingStats(name="demucs", audio_seconds=215.0)
    timing.start()
    # ... run demucs ...
    timing.stop()
    timing.processing_rate  # seconds of audio per second of wall time
"""

import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

# FileResult.status values
PROCESSED = 'processed'
SKIPPED = 'skipped'
NOT_AUDIO = 'not_audio'
FAILED = 'failed'


@dataclass
class TimingStats:
    """Wall-clock timing for a single operation."""
    name: str
    audio_seconds: Optional[float] = None
    start_time: float = 0.0
    end_time: float = 0.0

    def start(self):
        self.start_time = time.monotonic()

    def stop(self) -> float:
        self.end_time = time.monotonic()
        return self.elapsed

    @property
    def elapsed(self) -> float:
        """Total elapsed time in seconds."""
        return self.end_time - self.start_time if self.end_time > 0 else 0.0

    @property
    def processing_rate(self) -> Optional[float]:
        """Seconds of input audio processed per second, if known."""
        if self.audio_seconds is None or self.elapsed <= 0:
            return None
        return self.audio_seconds / self.elapsed


@dataclass
class FileResult:
    """Outcome of the pipeline for one input."""
    path: Path
    status: str = PROCESSED
    error: Optional[str] = None
    output_file: Optional[Path] = None
    multitrack_dir: Optional[Path] = None
    elapsed: float = 0.0

    @property
    def failed(self) -> bool:
        return self.status == FAILED


@dataclass
class BatchResult:
    """Results for a whole run, in input order."""
    files: List[FileResult] = field(default_factory=list)

    def add(self, result: FileResult):
        self.files.append(result)

    def merge(self, other: 'BatchResult'):
        self.files.extend(other.files)

    def count(self, status: str) -> int:
        return sum(1 for r in self.files if r.status == status)

    @property
    def errors(self) -> List[Path]:
        """Inputs that failed, in the order they were processed."""
        return [r.path for r in self.files if r.failed]

    @property
    def exit_code(self) -> int:
        return 1 if self.errors else 0
