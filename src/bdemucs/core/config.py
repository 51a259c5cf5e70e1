"""
Run Configuration for bdemucs

Built-in defaults, optionally overlaid by a YAML file, then by command-line
flags. The resulting RunConfig is immutable and handed to the batch driver.

YAML layout (every key optional):

    paths:
      output: /Volumes/Media/Instrumentals
      multitrack: /Volumes/Media/Multitracks
    separation:
      model: htdemucs_ft
      jobs: 6
    naming:
      album_append: " (Instrumental)"
      file_append: "_instrumental"
    processing:
      save_multitrack: false
      only_multitrack: false
      debug: false
      throttle_seconds: 1.0
"""

import dataclasses
import logging
import platform
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import psutil
import yaml

from bdemucs.core.common import (
    DEFAULT_ALBUM_APPEND,
    DEFAULT_FILE_APPEND,
    DEFAULT_MODEL,
    DEFAULT_MULTITRACK_ROOT,
    DEFAULT_OUTPUT_ROOT,
    DEFAULT_THROTTLE_SECONDS,
    OUTPUT_EXT,
)
from bdemucs.core.errors import UnsupportedPlatformError

logger = logging.getLogger(__name__)

# Cores left free for the rest of the system while Demucs runs
RESERVED_CORES = 2


def jobs_for_cores(total_cores: int) -> int:
    """Worker count for a machine with total_cores: total - 2, at least 1."""
    return max(1, total_cores - RESERVED_CORES)


def count_cores(system: Optional[str] = None) -> int:
    """
    Count the cores Demucs may use on this host.

    Linux reports logical cores, macOS physical cores.

    Raises:
        UnsupportedPlatformError: On any other OS, or if the count is unknown
    """
    system = system or platform.system()
    if system == 'Linux':
        total = psutil.cpu_count(logical=True)
    elif system == 'Darwin':
        total = psutil.cpu_count(logical=False)
    else:
        raise UnsupportedPlatformError(f"Unsupported operating system: {system}")

    if not total:
        raise UnsupportedPlatformError(f"Could not determine the number of cores on {system}")
    return total


def default_jobs() -> int:
    return jobs_for_cores(count_cores())


@dataclass(frozen=True)
class RunConfig:
    """Configuration for one bdemucs run."""
    output_root: Path = DEFAULT_OUTPUT_ROOT
    multitrack_root: Path = DEFAULT_MULTITRACK_ROOT

    # Separation
    model: str = DEFAULT_MODEL
    jobs: int = field(default_factory=default_jobs)
    device: str = 'cpu'  # GPU separation is not supported

    # Stage control
    save_multitrack: bool = False
    only_multitrack: bool = False
    debug: bool = False

    # Naming
    album_append: str = DEFAULT_ALBUM_APPEND
    file_append: str = DEFAULT_FILE_APPEND
    output_ext: str = OUTPUT_EXT

    # Pause between members of an input directory
    throttle_seconds: float = DEFAULT_THROTTLE_SECONDS

    def __post_init__(self):
        object.__setattr__(self, 'output_root', Path(self.output_root))
        object.__setattr__(self, 'multitrack_root', Path(self.multitrack_root))
        # Only-multitrack implies saving the multitrack
        if self.only_multitrack and not self.save_multitrack:
            object.__setattr__(self, 'save_multitrack', True)
        if isinstance(self.jobs, bool) or not isinstance(self.jobs, int):
            raise ValueError(f"jobs must be an integer, got {self.jobs!r}")
        if isinstance(self.throttle_seconds, bool) or not isinstance(self.throttle_seconds, (int, float)):
            raise ValueError(f"throttle_seconds must be a number, got {self.throttle_seconds!r}")
        if self.jobs < 1:
            raise ValueError(f"jobs must be at least 1, got {self.jobs}")

    def replace(self, **changes) -> 'RunConfig':
        """Return a copy with the given fields changed (None values are ignored)."""
        changes = {k: v for k, v in changes.items() if v is not None}
        return dataclasses.replace(self, **changes)

    @classmethod
    def from_dict(cls, data: Dict[str, Any], **overrides) -> 'RunConfig':
        """
        Build a config from the nested YAML structure.

        Keyword overrides (e.g. from the command line) win over the file;
        None values are ignored so unset flags keep the file or default value.
        """
        paths = data.get('paths') or {}
        separation = data.get('separation') or {}
        naming = data.get('naming') or {}
        processing = data.get('processing') or {}

        kwargs = {
            'output_root': paths.get('output'),
            'multitrack_root': paths.get('multitrack'),
            'model': separation.get('model'),
            'jobs': separation.get('jobs'),
            'album_append': naming.get('album_append'),
            'file_append': naming.get('file_append'),
            'save_multitrack': processing.get('save_multitrack'),
            'only_multitrack': processing.get('only_multitrack'),
            'debug': processing.get('debug'),
            'throttle_seconds': processing.get('throttle_seconds'),
        }
        kwargs = {k: v for k, v in kwargs.items() if v is not None}
        kwargs.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**kwargs)

    @classmethod
    def from_yaml(cls, yaml_path: Path, **overrides) -> 'RunConfig':
        """Load configuration from a YAML file."""
        with open(yaml_path, 'r') as f:
            try:
                data = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ValueError(f"Invalid config file {yaml_path}: {e}") from e
        if not isinstance(data, dict):
            raise ValueError(f"Config file must contain a mapping: {yaml_path}")
        return cls.from_dict(data, **overrides)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'paths': {
                'output': str(self.output_root),
                'multitrack': str(self.multitrack_root),
            },
            'separation': {
                'model': self.model,
                'jobs': self.jobs,
            },
            'naming': {
                'album_append': self.album_append,
                'file_append': self.file_append,
            },
            'processing': {
                'save_multitrack': self.save_multitrack,
                'only_multitrack': self.only_multitrack,
                'debug': self.debug,
                'throttle_seconds': self.throttle_seconds,
            },
        }

    def to_yaml(self, yaml_path: Path):
        """Save configuration to a YAML file."""
        with open(yaml_path, 'w') as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)
