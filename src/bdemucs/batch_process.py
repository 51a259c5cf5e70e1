"""
Batch driver and command line interface for bdemucs.

Converts audio files to instrumental (vocal-removed) versions and/or
multitrack stem sets with Demucs and FFmpeg, filing the results under
<output>/<artist>/[<year> ]<album>/.

Required software:
- demucs (https://github.com/facebookresearch/demucs)
- ffmpeg / ffprobe (https://ffmpeg.org/)

Usage:
    bdemucs -s -o /Users/Me/Instrumentals MySong1.flac
    bdemucs --only-multitrack /Music/Album
    bdemucs --config bdemucs.yaml /Music/Album other.flac
"""

import argparse
import logging
import sys
import time
from pathlib import Path
from typing import Callable, Iterable, List, Optional

from bdemucs.core.common import (
    DEFAULT_ALBUM_APPEND,
    DEFAULT_FILE_APPEND,
    DEFAULT_MODEL,
    DEFAULT_MULTITRACK_ROOT,
    DEFAULT_OUTPUT_ROOT,
    setup_logging,
)
from bdemucs.core.config import RunConfig
from bdemucs.core.errors import (
    MissingToolError,
    ShutdownRequested,
    UnknownInputError,
    UnsupportedPlatformError,
)
from bdemucs.core.file_utils import list_input_directory
from bdemucs.core.graceful_shutdown import install_signal_handlers, restore_signal_handlers, shutdown_requested
from bdemucs.core.pipeline_stats import FAILED, NOT_AUDIO, PROCESSED, SKIPPED, BatchResult
from bdemucs.core.terminal import fmt_bold, fmt_error, fmt_header
from bdemucs.pipeline import process_file
from bdemucs.preprocessing.demucs_sep import check_tools_installed

logger = logging.getLogger(__name__)


class ArgumentParser(argparse.ArgumentParser):
    """argparse with exit status 1 on usage errors."""

    def error(self, message):
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: error: {message}\n")


def process_folder(folder: Path,
                   config: RunConfig,
                   tmp_dir: Optional[Path] = None,
                   sleep: Callable[[float], None] = time.sleep) -> BatchResult:
    """
    Run every immediate child of folder through the pipeline.

    Members are processed one after another with a pause of
    config.throttle_seconds between them.
    """
    batch = BatchResult()
    entries = list_input_directory(folder)

    for i, entry in enumerate(entries, 1):
        if shutdown_requested.is_set():
            break
        logger.debug(f"Processing {i}/{len(entries)}: {entry.name}")
        batch.add(process_file(entry, config, tmp_dir=tmp_dir))

        if i < len(entries) and config.throttle_seconds > 0:
            sleep(config.throttle_seconds)

    return batch


def run_batch(inputs: Iterable[str | Path],
              config: RunConfig,
              tmp_dir: Optional[Path] = None,
              sleep: Callable[[float], None] = time.sleep) -> BatchResult:
    """
    Process command line inputs in the order given.

    Files are processed directly, folders expanded one level.

    Raises:
        UnknownInputError: At the first input that is neither; inputs
            before it have already been processed
    """
    batch = BatchResult()

    for arg in inputs:
        if shutdown_requested.is_set():
            break
        path = Path(arg)
        if path.is_file():
            logger.info(f"File: {arg}")
            batch.add(process_file(path, config, tmp_dir=tmp_dir))
        elif path.is_dir():
            logger.info(f"Dir:  {arg}")
            batch.merge(process_folder(path, config, tmp_dir=tmp_dir, sleep=sleep))
        else:
            raise UnknownInputError(f"Unknown argument: {arg}")

    return batch


def display_errors(batch: BatchResult) -> int:
    """Report the run and return the process exit status."""
    logger.info(
        f"Processed: {batch.count(PROCESSED)}, skipped: {batch.count(SKIPPED)}, "
        f"not audio: {batch.count(NOT_AUDIO)}, failed: {batch.count(FAILED)}")

    if not batch.errors:
        logger.info(fmt_bold("No errors detected"))
        return 0

    logger.error(fmt_error("Errors detected. You may need to manually re-process the following file(s):"))
    for path in batch.errors:
        logger.error(fmt_error(f"  {path}"))
    return 1


def build_parser() -> ArgumentParser:
    parser = ArgumentParser(
        prog='bdemucs',
        description="Convert audio files to instrumental / karaoke versions using demucs and ffmpeg",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  bdemucs -s -o /Users/Me/Instrumentals MySong1.flac
  bdemucs --only-multitrack /Music/Artist/Album
  bdemucs --config bdemucs.yaml /Music/Album other.flac

Required software: demucs, ffmpeg, ffprobe
        """
    )

    parser.add_argument('inputs', nargs='*', metavar='INPUT',
                        help='Input files or folders')

    parser.add_argument('-o', '--output-dir', type=str,
                        help=f'Set the output base directory (default: {DEFAULT_OUTPUT_ROOT})')
    parser.add_argument('--multitrack-dir', type=str,
                        help=f'Set the multitrack base directory (default: {DEFAULT_MULTITRACK_ROOT})')
    parser.add_argument('-s', '--save-multitrack', action='store_true', default=None,
                        help='Save multitrack files (default: false)')
    parser.add_argument('-m', '--only-multitrack', action='store_true', default=None,
                        help='Only process multitrack files (default: false)')
    parser.add_argument('-a', '--append', type=str,
                        help=f'String to append to Album title (default: "{DEFAULT_ALBUM_APPEND}")')
    parser.add_argument('-f', '--file-append', type=str,
                        help=f'String to append to file name (default: "{DEFAULT_FILE_APPEND}")')
    parser.add_argument('-d', '--debug', action='store_true', default=None,
                        help='Enable debug mode: keep the working directory (default: false)')

    parser.add_argument('-n', '--model', type=str,
                        help=f'Demucs model (default: {DEFAULT_MODEL})')
    parser.add_argument('-j', '--jobs', type=int,
                        help='Demucs jobs (default: number of cores minus 2)')

    parser.add_argument('-c', '--config', type=str,
                        help='YAML config file')
    parser.add_argument('--generate-config', type=str, metavar='PATH',
                        help='Write the effective configuration to PATH and exit')
    parser.add_argument('-v', '--verbose', action='store_true',
                        help='Enable verbose logging')
    parser.add_argument('--log-file', type=str,
                        help='Write logs to specified file')

    return parser


def build_config(args: argparse.Namespace) -> RunConfig:
    """
    Defaults, then the config file, then command line flags.

    Raises:
        FileNotFoundError: If --config points at a missing file
        ValueError: If the config file is malformed or holds invalid values
        UnsupportedPlatformError: If --jobs is unset and cores cannot be counted
    """
    overrides = {
        'output_root': args.output_dir,
        'multitrack_root': args.multitrack_dir,
        'model': args.model,
        'jobs': args.jobs,
        'album_append': args.append,
        'file_append': args.file_append,
        'save_multitrack': args.save_multitrack,
        'only_multitrack': args.only_multitrack,
        'debug': args.debug,
    }

    if args.config:
        config_path = Path(args.config)
        if not config_path.is_file():
            raise FileNotFoundError(f"Config file not found: {config_path}")
        config = RunConfig.from_yaml(config_path, **overrides)
        logger.info(f"Loaded config from: {config_path}")
    else:
        config = RunConfig.from_dict({}, **overrides)

    return config


def log_config(config: RunConfig, args: argparse.Namespace):
    if args.output_dir:
        logger.info(f"Output directory: {config.output_root}")
    if config.only_multitrack:
        logger.info(fmt_bold("Processing only multitrack output"))
    elif config.save_multitrack:
        logger.info(fmt_bold("Saving multitrack output"))
    if args.append is not None:
        logger.info(fmt_bold(f'Appending "{config.album_append}" to album name tags'))
    if args.file_append is not None:
        logger.info(fmt_bold(f'Appending "{config.file_append}" to file name'))
    if config.debug:
        logger.info(fmt_bold("Debug mode enabled"))
    logger.info(fmt_bold(f"Processing with {config.jobs} jobs, model {config.model}"))


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point; returns the process exit status."""
    parser = build_parser()
    args = parser.parse_args(argv)

    log_level = logging.DEBUG if args.verbose else logging.INFO
    setup_logging(level=log_level, log_file=args.log_file)

    if not args.inputs and not args.generate_config:
        parser.error("at least one INPUT file or folder is required")

    try:
        config = build_config(args)
    except (FileNotFoundError, ValueError, UnsupportedPlatformError) as e:
        logger.error(str(e))
        return 1

    if args.generate_config:
        config.to_yaml(Path(args.generate_config))
        print(f"Config written: {args.generate_config}")
        return 0

    try:
        check_tools_installed()
    except MissingToolError as e:
        logger.error(str(e))
        return 1

    log_config(config, args)
    logger.info(fmt_header("=" * 60))

    install_signal_handlers()
    try:
        batch = run_batch(args.inputs, config)
    except ShutdownRequested:
        return 1
    except UnknownInputError as e:
        logger.error(str(e))
        return 1
    finally:
        restore_signal_handlers()

    logger.info(fmt_header("=" * 60))
    return display_errors(batch)


if __name__ == "__main__":
    sys.exit(main())
