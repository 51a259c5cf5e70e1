"""
Metadata Utilities for bdemucs

Reads the tags and stream properties the pipeline needs from an input file:
artist, album, date (year), sample rate, bit depth and duration.

ffprobe is the primary source. Tags that ffprobe does not report at the
container level are looked up in the audio stream tags and then with
mutagen (ID3/FLAC/MP4 easy tags).

Usage:
    from bdemucs.core.metadata_utils import read_metadata

    meta = read_metadata(Path("song.flac"))
    meta.artist, meta.album, meta.year, meta.high_resolution
"""

import json
import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import mutagen

from bdemucs.core.errors import ProbeError
from bdemucs.core.file_utils import album_year

logger = logging.getLogger(__name__)

TAG_FIELDS = ('artist', 'album', 'date')

# Demucs flag selected for 24-bit sources
INT24_FLAG = '--int24'


@dataclass
class TrackMetadata:
    """Tags and stream properties of one input file."""
    artist: str = ''
    album: str = ''
    date: str = ''
    sample_rate: str = ''
    bit_depth: str = ''
    duration: Optional[float] = None

    @property
    def year(self) -> Optional[str]:
        """Four-digit year for folder names, or None."""
        return album_year(self.date)

    @property
    def high_resolution(self) -> bool:
        """Only an exact "24" bit depth selects 24-bit stems."""
        return self.bit_depth == '24'

    @property
    def bit_depth_flag(self) -> Optional[str]:
        return INT24_FLAG if self.high_resolution else None


def probe_file(audio_path: Path) -> Dict[str, Any]:
    """
    Run ffprobe on a file and return its parsed JSON report.

    Only the first audio stream is reported.

    Raises:
        ProbeError: If ffprobe is missing, exits non-zero or prints invalid JSON
    """
    cmd = [
        'ffprobe', '-v', 'error',
        '-select_streams', 'a:0',
        '-show_format', '-show_streams',
        '-of', 'json',
        str(audio_path),
    ]
    logger.debug(f"Running: {' '.join(cmd)}")

    try:
        result = subprocess.run(cmd, capture_output=True, text=True)
    except FileNotFoundError as e:
        raise ProbeError(f"ffprobe not found: {e}") from e

    if result.returncode != 0:
        raise ProbeError(f"ffprobe failed for {audio_path}: {result.stderr.strip()}")

    try:
        report = json.loads(result.stdout or '{}')
    except json.JSONDecodeError as e:
        raise ProbeError(f"Could not parse ffprobe output for {audio_path}: {e}") from e

    if not isinstance(report, dict):
        raise ProbeError(f"Unexpected ffprobe output for {audio_path}")
    return report


def _lower_keys(tags: Optional[Dict[str, Any]]) -> Dict[str, str]:
    # Vorbis comments come back upper case ("ALBUM"), ID3 lower case
    return {str(k).lower(): str(v) for k, v in (tags or {}).items()}


def read_mutagen_tags(audio_path: Path) -> Dict[str, str]:
    """
    Read artist/album/date with mutagen easy tags.

    Returns an empty dict if mutagen cannot identify or read the file.
    """
    try:
        audio = mutagen.File(audio_path, easy=True)
    except (mutagen.MutagenError, OSError) as e:
        logger.debug(f"mutagen could not read {audio_path.name}: {e}")
        return {}

    if audio is None or audio.tags is None:
        return {}

    tags = {}
    for name in TAG_FIELDS:
        values = audio.tags.get(name)
        if values:
            tags[name] = str(values[0])
    return tags


def read_metadata(audio_path: str | Path) -> TrackMetadata:
    """
    Extract album, artist, date, sample rate, bit depth and duration.

    Missing tags come back as empty strings; a failed probe raises.

    Args:
        audio_path: Resolved path of the input file

    Returns:
        TrackMetadata for the file

    Raises:
        ProbeError: If ffprobe could not be run on the file
    """
    audio_path = Path(audio_path)
    report = probe_file(audio_path)

    fmt = report.get('format') or {}
    streams = report.get('streams') or []
    stream = streams[0] if streams else {}

    tags = _lower_keys(fmt.get('tags'))
    stream_tags = _lower_keys(stream.get('tags'))
    for name in TAG_FIELDS:
        if not tags.get(name) and stream_tags.get(name):
            tags[name] = stream_tags[name]

    if not all(tags.get(name) for name in TAG_FIELDS):
        for name, value in read_mutagen_tags(audio_path).items():
            if not tags.get(name):
                tags[name] = value

    duration = None
    if fmt.get('duration') not in (None, '', 'N/A'):
        try:
            duration = float(fmt['duration'])
        except ValueError:
            logger.debug(f"Unparseable duration for {audio_path.name}: {fmt['duration']}")

    bit_depth = str(stream.get('bits_per_raw_sample') or '')
    if bit_depth == 'N/A':
        bit_depth = ''

    return TrackMetadata(
        artist=tags.get('artist', ''),
        album=tags.get('album', ''),
        date=tags.get('date', ''),
        sample_rate=str(stream.get('sample_rate') or ''),
        bit_depth=bit_depth,
        duration=duration,
    )
