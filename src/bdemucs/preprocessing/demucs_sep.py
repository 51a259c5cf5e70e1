"""
Demucs Stem Separation for bdemucs

This module runs the Demucs command line tool on one input file inside a
workspace. Separation always runs on the CPU.

Output (written by demucs):
    <workspace>/<model>/<input basename>/{bass,drums,other,vocals}.wav

Dependencies:
- demucs (command line tool)
- bdemucs.core.pipeline_stats (timing / processing rate)

Demucs does not always exit non-zero when it fails internally, so after a
successful exit the stems are checked: at least one of bass, drums and
other has to exist.
"""

import logging
import shutil
import subprocess
from pathlib import Path
from typing import Dict, List, Optional

from bdemucs.core.common import DEMUCS_STEMS, INSTRUMENTAL_STEMS, STEM_EXT
from bdemucs.core.errors import MissingToolError, SeparationError
from bdemucs.core.pipeline_stats import TimingStats

logger = logging.getLogger(__name__)

REQUIRED_TOOLS = ('demucs', 'ffmpeg', 'ffprobe')


def check_tools_installed(tools=REQUIRED_TOOLS):
    """
    Make sure every external command the pipeline calls is on PATH.

    Raises:
        MissingToolError: Naming each missing command
    """
    missing = [tool for tool in tools if shutil.which(tool) is None]
    if missing:
        raise MissingToolError(f"Required software not found on PATH: {', '.join(missing)}")


def build_demucs_command(audio_file: Path,
                         output_dir: Path,
                         model: str,
                         jobs: int,
                         bit_depth_flag: Optional[str] = None,
                         device: str = 'cpu') -> List[str]:
    """Assemble the demucs command line."""
    cmd = ['demucs', '-n', model, '--out', str(output_dir)]
    if bit_depth_flag:
        cmd.append(bit_depth_flag)
    cmd.extend(['-d', device, '--jobs', str(jobs), str(audio_file)])
    return cmd


def find_stems(track_dir: Path) -> Dict[str, Path]:
    """Map stem name to file for the stems present in track_dir."""
    stems = {}
    for stem_name in DEMUCS_STEMS:
        stem_file = track_dir / f"{stem_name}{STEM_EXT}"
        if stem_file.is_file():
            stems[stem_name] = stem_file
    return stems


def separate_stems(audio_file: str | Path,
                   workspace_root: str | Path,
                   model: str,
                   jobs: int,
                   bit_depth_flag: Optional[str] = None,
                   duration: Optional[float] = None,
                   device: str = 'cpu') -> Dict[str, Path]:
    """
    Separate an audio file into stems using Demucs.

    Args:
        audio_file: Resolved path to the input file
        workspace_root: Directory passed to demucs --out
        model: Demucs model name
        jobs: Number of parallel jobs for demucs
        bit_depth_flag: "--int24" for 24-bit sources, else None
        duration: Input duration in seconds, for the processing rate report
        device: Demucs device (only 'cpu' is supported)

    Returns:
        Dictionary mapping stem names to output file paths

    Raises:
        SeparationError: If demucs fails or no instrumental stem was written
    """
    audio_file = Path(audio_file)
    workspace_root = Path(workspace_root)
    track_dir = workspace_root / model / audio_file.stem

    cmd = build_demucs_command(audio_file, workspace_root, model, jobs,
                               bit_depth_flag=bit_depth_flag, device=device)
    logger.info(' '.join(cmd))

    timing = TimingStats(name='demucs', audio_seconds=duration)
    timing.start()
    try:
        result = subprocess.run(cmd, capture_output=True, text=True)
    except FileNotFoundError as e:
        raise SeparationError(f"demucs could not be started: {e}") from e
    timing.stop()

    logger.debug(f"Demucs stdout: {result.stdout}")
    if result.stderr:
        logger.debug(f"Demucs stderr: {result.stderr}")

    if result.returncode != 0:
        tail = result.stderr.strip().splitlines()[-1:] if result.stderr else []
        detail = f": {tail[0]}" if tail else ''
        raise SeparationError(
            f"Error: demucs did not complete successfully for {audio_file} "
            f"(exit code {result.returncode}){detail}")

    rate = timing.processing_rate
    if rate is not None:
        logger.info(f"Total time for processing: {timing.elapsed:.0f} seconds "
                    f"at {rate:.2f} seconds/s")
    else:
        logger.info(f"Total time for processing: {timing.elapsed:.0f} seconds")

    stems = find_stems(track_dir)
    if not any(name in stems for name in INSTRUMENTAL_STEMS):
        raise SeparationError(f"Error: none of the demucs stems exist in {track_dir}")

    logger.debug(f"Demucs wrote {len(stems)} stems: {sorted(stems)}")
    return stems
