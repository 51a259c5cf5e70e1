"""
Common Constants and Utilities for bdemucs

This module provides shared constants and the logging setup used across
the conversion pipeline.

Dependencies:
- bdemucs.core.terminal

Constants:
- Audio file extensions accepted by the audio-file gate
- Demucs stem names and intermediate file names
- Default output locations and naming strings
"""

import logging
import sys
from pathlib import Path

from bdemucs.core.terminal import ColoredFormatter, PlainFormatter

# Logging configuration
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
LOG_LEVEL = logging.INFO

# Audio file extensions (matched case-sensitively against the suffix)
AUDIO_EXTENSIONS = {'.mp3', '.flac', '.m4a', '.m4v', '.wav', '.wma'}

# Demucs stem names
DEMUCS_STEMS = ['bass', 'drums', 'other', 'vocals']
INSTRUMENTAL_STEMS = ['bass', 'drums', 'other']
STEM_EXT = '.wav'

# Intermediate mixdown written inside the per-file workspace
TMP_MIX_NAME = 'tmp.flac'
TAGGED_MIX_SUFFIX = '.tagged'
OUTPUT_EXT = '.flac'

# Defaults
DEFAULT_OUTPUT_ROOT = Path('/Volumes/Media/Instrumentals')
DEFAULT_MULTITRACK_ROOT = Path('/Volumes/Media/Multitracks')
DEFAULT_MODEL = 'htdemucs_ft'
DEFAULT_ALBUM_APPEND = ' (Instrumental)'
DEFAULT_FILE_APPEND = '_instrumental'
DEFAULT_THROTTLE_SECONDS = 1.0

WORKSPACE_PREFIX = 'bdemucs.'


def setup_logging(level: int = LOG_LEVEL, log_file: str = None) -> None:
    """
    Set up logging configuration for the project.

    Console output uses the colored formatter; the optional log file gets
    plain LOG_FORMAT lines.

    Args:
        level: Logging level (default: INFO)
        log_file: Optional file path to write logs to
    """
    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(ColoredFormatter(datefmt='%H:%M:%S'))
    handlers = [console]

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(PlainFormatter(LOG_FORMAT))
        handlers.append(file_handler)

    logging.basicConfig(
        level=level,
        handlers=handlers,
        force=True
    )
