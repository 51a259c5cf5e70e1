"""
File Utilities for bdemucs

Path handling for the conversion pipeline. Everything here is pure string
and path construction except list_input_directory and is_audio_file, which
look at the filesystem.

Functions:
- is_audio_file(path): Audio-file gate (extension allow-list)
- album_year(date): Four-digit year taken from a date tag, or None
- album_folder(root, artist, year, album): <root>/<artist>/[<year> ]<album>
- output_file_path(...): Final instrumental mix destination
- multitrack_dir_path(...): Stem archive destination
- list_input_directory(directory): Immediate children of an input folder
"""

import logging
import re
from pathlib import Path
from typing import List, Optional

from bdemucs.core.common import AUDIO_EXTENSIONS, OUTPUT_EXT

logger = logging.getLogger(__name__)

YEAR_PATTERN = re.compile(r'^[0-9]{4}$')


def is_audio_file(path: str | Path) -> bool:
    """
    Check a path against the audio extension allow-list.

    The suffix is matched case-sensitively, so "song.FLAC" is rejected.

    Args:
        path: Candidate input file

    Returns:
        True if the path is a regular file with an allowed extension
    """
    path = Path(path)
    return path.suffix in AUDIO_EXTENSIONS and path.is_file()


def album_year(date: Optional[str]) -> Optional[str]:
    """
    Derive the year used in folder names from a date tag.

    The first four characters are kept, and only used if they are digits:
    "1994-03-01" -> "1994", "94" -> None, "" -> None.
    """
    if not date:
        return None
    year = date[:4]
    return year if YEAR_PATTERN.match(year) else None


def clean_segment(name: Optional[str]) -> str:
    """Make a tag value safe to use as a single path segment."""
    if not name:
        return ''
    name = name.replace('/', '_').replace('\0', '')
    # "." and ".." would step out of the output root
    if name.strip('.') == '':
        return name.replace('.', '_')
    return name


def album_folder(root: str | Path,
                 artist: Optional[str],
                 year: Optional[str],
                 album: Optional[str]) -> Path:
    """
    Build <root>/<artist>/[<year> ]<album>.

    Args:
        root: Output or multitrack root
        artist: Artist tag (may be empty)
        year: Four-digit year from album_year(), or None to omit it
        album: Album tag (may be empty)
    """
    album = clean_segment(album)
    album_name = f"{year} {album}" if year else album
    return Path(root) / clean_segment(artist) / album_name


def output_file_path(root: str | Path,
                     artist: Optional[str],
                     year: Optional[str],
                     album: Optional[str],
                     basename: str,
                     file_append: str,
                     ext: str = OUTPUT_EXT) -> Path:
    """Final mix destination: <album folder>/<basename><file_append><ext>."""
    return album_folder(root, artist, year, album) / f"{basename}{file_append}{ext}"


def multitrack_dir_path(root: str | Path,
                        artist: Optional[str],
                        year: Optional[str],
                        album: Optional[str],
                        basename: str) -> Path:
    """Stem archive destination: <album folder>/<basename>/."""
    return album_folder(root, artist, year, album) / basename


def list_input_directory(directory: str | Path) -> List[Path]:
    """
    List the immediate children of an input directory.

    Not recursive. Hidden entries are left out and the rest sorted by name,
    matching a shell "dir/*" glob.
    """
    directory = Path(directory)
    entries = [p for p in directory.iterdir() if not p.name.startswith('.')]
    logger.debug(f"Found {len(entries)} entries in {directory}")
    return sorted(entries)
