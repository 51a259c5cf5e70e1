"""
Single-file conversion pipeline.

    read metadata -> compute output paths -> skip if already done
    -> separate (demucs) -> mixdown + tags (ffmpeg) -> archive stems
    -> clean up workspace

Each call returns a FileResult instead of touching shared state; the batch
driver collects them. An interrupt (ShutdownRequested) is not handled here:
it unwinds through the Workspace, which cleans up, and up to the driver.
"""

import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from bdemucs.core.config import RunConfig
from bdemucs.core.errors import BdemucsError, OutputMoveError
from bdemucs.core.file_utils import album_folder, is_audio_file, multitrack_dir_path, output_file_path
from bdemucs.core.metadata_utils import TrackMetadata, read_metadata
from bdemucs.core.pipeline_stats import FAILED, NOT_AUDIO, PROCESSED, SKIPPED, FileResult
from bdemucs.core.terminal import fmt_error, fmt_italic
from bdemucs.core.workspace import Workspace
from bdemucs.preprocessing.demucs_sep import separate_stems
from bdemucs.preprocessing.mixdown import create_instrumental
from bdemucs.preprocessing.multitrack import archive_stems

logger = logging.getLogger(__name__)


@dataclass
class OutputPaths:
    """Where one input's results go."""
    output_dir: Path
    final_file: Path
    multitrack_dir: Path

    @classmethod
    def for_track(cls, meta: TrackMetadata, basename: str, config: RunConfig) -> 'OutputPaths':
        year = meta.year
        return cls(
            output_dir=album_folder(config.output_root, meta.artist, year, meta.album),
            final_file=output_file_path(config.output_root, meta.artist, year, meta.album,
                                        basename, config.file_append, config.output_ext),
            multitrack_dir=multitrack_dir_path(config.multitrack_root, meta.artist, year,
                                               meta.album, basename),
        )


def log_track_info(meta: TrackMetadata, basename: str, paths: OutputPaths):
    logger.info("")
    logger.info(f"Artist:      {meta.artist}")
    logger.info(f"Album:       {meta.album}")
    logger.info(f"Song File:   {basename}")
    logger.info(f"Album Year:  {meta.year or ''}")
    logger.info(f"Sample Rate: {meta.sample_rate}")
    logger.info(f"Bit Depth:   {meta.bit_depth} bit")
    logger.info(f"Dest Dir:    {paths.output_dir}")
    logger.info("")


def _run(source: Path, basename: str, config: RunConfig, result: FileResult,
         tmp_dir: Optional[Path]):
    meta = read_metadata(source)
    paths = OutputPaths.for_track(meta, basename, config)

    if config.save_multitrack and paths.multitrack_dir.is_dir():
        logger.info(fmt_italic(f"Multi-track output directory already exists: {paths.multitrack_dir}"))
        result.status = SKIPPED
        return

    make_mix = not config.only_multitrack
    if make_mix and paths.final_file.exists():
        logger.info(fmt_italic(f"Output file already exists: {paths.final_file}"))
        make_mix = False

    if not make_mix and not config.save_multitrack:
        result.status = SKIPPED
        return

    log_track_info(meta, basename, paths)

    with Workspace(config.model, source.stem, debug=config.debug, tmp_dir=tmp_dir) as ws:
        stems = separate_stems(
            source,
            ws.root,
            model=config.model,
            jobs=config.jobs,
            bit_depth_flag=meta.bit_depth_flag,
            duration=meta.duration,
            device=config.device,
        )

        if make_mix:
            result.output_file = create_instrumental(
                source, stems, ws.track_dir, meta.album, config.album_append, paths.final_file)

        if config.save_multitrack:
            try:
                result.multitrack_dir = archive_stems(ws.track_dir, paths.multitrack_dir)
            except OutputMoveError:
                ws.retain = True
                raise

    result.status = PROCESSED


def process_file(input_file: str | Path,
                 config: RunConfig,
                 tmp_dir: Optional[Path] = None) -> FileResult:
    """
    Convert one input file.

    Args:
        input_file: Path as given on the command line or found in a folder
        config: Run configuration
        tmp_dir: Parent for the temporary workspace (default: system temp)

    Returns:
        FileResult with status processed, skipped, not_audio or failed
    """
    input_file = Path(input_file)
    source = input_file.resolve()
    result = FileResult(path=source)

    if not is_audio_file(input_file):
        logger.info(fmt_italic(f'"{input_file.name}" is not an audio file'))
        result.status = NOT_AUDIO
        return result

    start = time.monotonic()
    try:
        _run(source, input_file.stem, config, result, tmp_dir)
    except (BdemucsError, OSError) as e:
        logger.error(fmt_error(str(e)))
        result.status = FAILED
        result.error = str(e)
    finally:
        result.elapsed = time.monotonic() - start

    return result
