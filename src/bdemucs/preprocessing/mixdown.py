"""
Instrumental mixdown and tagging.

1. Mix the non-vocal stems with FFmpeg's amix filter (equal weights,
   duration of the longest stem) into <track_dir>/tmp.flac.
2. Remux into <track_dir>/<basename>.tagged.flac: audio from tmp.flac,
   tags from the original input file, album tag replaced by
   "<album><album_append>". Streams are copied, not re-encoded.
3. Move the result to its final location under the output root.
"""

import logging
import shutil
import subprocess
from pathlib import Path
from typing import Dict, List

from bdemucs.core.common import INSTRUMENTAL_STEMS, OUTPUT_EXT, TAGGED_MIX_SUFFIX, TMP_MIX_NAME
from bdemucs.core.errors import MixdownError, OutputMoveError

logger = logging.getLogger(__name__)

FFMPEG_BASE = ['ffmpeg', '-nostdin', '-loglevel', 'warning']


def _run_ffmpeg(cmd: List[str], output: Path, step: str):
    logger.debug(f"Running: {' '.join(cmd)}")
    try:
        result = subprocess.run(cmd, capture_output=True, text=True)
    except FileNotFoundError as e:
        raise MixdownError(f"ffmpeg could not be started: {e}") from e

    if result.stderr:
        logger.debug(f"ffmpeg stderr: {result.stderr.strip()}")
    if result.returncode != 0:
        raise MixdownError(f"ffmpeg {step} failed (exit code {result.returncode}): "
                           f"{result.stderr.strip()}")
    if not output.is_file():
        raise MixdownError(f"ffmpeg {step} did not write {output}")


def build_mix_command(stem_files: List[Path], output: Path) -> List[str]:
    cmd = list(FFMPEG_BASE)
    for stem_file in stem_files:
        cmd.extend(['-i', str(stem_file)])
    cmd.extend([
        '-filter_complex', f"amix=inputs={len(stem_files)}:duration=longest",
        str(output),
    ])
    return cmd


def build_tag_command(source: Path, mixed: Path, album: str, output: Path) -> List[str]:
    """Take audio from mixed, all tags from source, and override the album."""
    return FFMPEG_BASE + [
        '-i', str(source),
        '-i', str(mixed),
        '-map', '1',
        '-map_metadata', '0',
        '-metadata', f"album={album}",
        '-c', 'copy',
        str(output),
    ]


def mix_stems(stems: Dict[str, Path], track_dir: Path) -> Path:
    """
    Mix the bass, drums and other stems that exist into tmp.flac.

    Raises:
        MixdownError: If there is nothing to mix or ffmpeg fails
    """
    stem_files = [stems[name] for name in INSTRUMENTAL_STEMS if name in stems]
    if not stem_files:
        raise MixdownError(f"No instrumental stems to mix in {track_dir}")

    output = track_dir / TMP_MIX_NAME
    logger.info("Merging stems...")
    _run_ffmpeg(build_mix_command(stem_files, output), output, 'mix')
    return output


def copy_metadata(source: Path, mixed: Path, album: str, output: Path) -> Path:
    """
    Write mixed audio with the source file's tags and a new album name.

    Raises:
        MixdownError: If ffmpeg fails
    """
    logger.info("Copying metadata...")
    _run_ffmpeg(build_tag_command(source, mixed, album, output), output, 'remux')
    return output


def move_output(output: Path, destination: Path) -> Path:
    """
    Move the finished file to destination, creating parent folders.

    Raises:
        OutputMoveError: If the file cannot be moved
    """
    logger.info("Moving output file to final location")
    logger.info(f'mv "{output}" "{destination}"')
    try:
        destination.parent.mkdir(parents=True, exist_ok=True)
        shutil.move(str(output), str(destination))
    except OSError as e:
        raise OutputMoveError(f"Error: Failed to move output file: {output} to {destination}: {e}") from e
    return destination


def create_instrumental(source: Path,
                        stems: Dict[str, Path],
                        track_dir: Path,
                        album: str,
                        album_append: str,
                        destination: Path) -> Path:
    """
    Produce the tagged instrumental mix and put it at destination.

    Args:
        source: Original input file (tag source)
        stems: Stem files from separate_stems()
        track_dir: Per-file workspace directory
        album: Original album tag
        album_append: Suffix appended to the album tag
        destination: Final output path

    Returns:
        destination
    """
    mixed = mix_stems(stems, track_dir)
    tagged = track_dir / f"{source.stem}{TAGGED_MIX_SUFFIX}{OUTPUT_EXT}"
    copy_metadata(source, mixed, f"{album}{album_append}", tagged)
    return move_output(tagged, destination)
