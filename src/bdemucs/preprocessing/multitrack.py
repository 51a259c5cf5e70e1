"""
Multitrack archiving.

Moves the per-file stem folder out of the workspace to
<multitrack root>/<artist>/[<year> ]<album>/<input basename>/, never
replacing an existing folder. The temporary mixdown is deleted first so
only the stems are archived.
"""

import logging
import shutil
from pathlib import Path

from bdemucs.core.common import TMP_MIX_NAME
from bdemucs.core.errors import OutputMoveError

logger = logging.getLogger(__name__)


def archive_stems(track_dir: Path, destination: Path) -> Path:
    """
    Relocate track_dir to destination.

    Args:
        track_dir: Workspace folder holding the stems
        destination: Archive folder for this input (must not exist)

    Returns:
        destination

    Raises:
        OutputMoveError: If destination exists or the move fails
    """
    (track_dir / TMP_MIX_NAME).unlink(missing_ok=True)

    logger.info(f"Moving multitrack files to final location: {destination}")
    if destination.exists():
        raise OutputMoveError(f"Error: Failed to move multitrack files to {destination.parent}: "
                              f"{destination} already exists")
    try:
        destination.parent.mkdir(parents=True, exist_ok=True)
        shutil.move(str(track_dir), str(destination))
    except OSError as e:
        raise OutputMoveError(f"Error: Failed to move multitrack files to {destination.parent}: {e}") from e
    return destination
