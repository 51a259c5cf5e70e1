"""
Temporary workspace for one input file.

Layout:
    <tmp>/bdemucs.XXXXXX/                 root
        <model>/                          model_dir (created by demucs)
            <input basename>/             track_dir
                bass.wav drums.wav other.wav vocals.wav
                tmp.flac <input basename>.tagged.flac

Usage:
    with Workspace(config.model, basename, debug=config.debug) as ws:
        run_demucs(..., ws.root, ...)
        mix_stems(ws.track_dir, ...)

Release deletes only the files the pipeline knows about and then removes
each directory with rmdir, so anything unexpected left behind makes cleanup
fail instead of being deleted silently.
"""

import logging
import tempfile
from pathlib import Path
from typing import List, Optional

from bdemucs.core.common import (DEMUCS_STEMS, STEM_EXT, TAGGED_MIX_SUFFIX, TMP_MIX_NAME,
                                  OUTPUT_EXT, WORKSPACE_PREFIX)
from bdemucs.core.errors import WorkspaceError

logger = logging.getLogger(__name__)


class Workspace:
    """Process-private scratch directory, released exactly once."""

    def __init__(self, model: str, basename: str, debug: bool = False,
                 tmp_dir: Optional[Path] = None):
        self.model = model
        self.basename = basename
        self.debug = debug
        self.tmp_dir = tmp_dir
        self.root: Optional[Path] = None
        # Set when stems must stay where they are (failed archive move)
        self.retain = False
        self._released = False

    @property
    def model_dir(self) -> Path:
        return self._require_root() / self.model

    @property
    def track_dir(self) -> Path:
        return self.model_dir / self.basename

    def _require_root(self) -> Path:
        if self.root is None:
            raise WorkspaceError("Workspace has not been acquired")
        return self.root

    def intermediate_files(self) -> List[Path]:
        """Files the pipeline may leave in track_dir."""
        names = [TMP_MIX_NAME, f"{self.basename}{TAGGED_MIX_SUFFIX}{OUTPUT_EXT}"]
        names += [f"{stem}{STEM_EXT}" for stem in DEMUCS_STEMS]
        return [self.track_dir / name for name in names]

    def acquire(self) -> Path:
        """
        Create a fresh, uniquely named temporary directory.

        Returns:
            The workspace root

        Raises:
            WorkspaceError: If the directory cannot be created
        """
        if self.root is not None:
            raise WorkspaceError(f"Workspace already acquired: {self.root}")
        try:
            self.root = Path(tempfile.mkdtemp(prefix=WORKSPACE_PREFIX, dir=self.tmp_dir))
        except OSError as e:
            raise WorkspaceError(f"Could not create working directory: {e}") from e
        logger.debug(f"Working directory: {self.root}")
        return self.root

    def release(self):
        """
        Dispose of the workspace.

        Debug mode and retained workspaces are left on disk and reported.
        Otherwise known intermediates are deleted and the track, model and
        root directories removed, innermost first.

        Raises:
            WorkspaceError: If a directory is not empty or cannot be removed
        """
        if self.root is None or self._released:
            return
        self._released = True

        if self.debug:
            logger.warning("Debug mode is enabled. Preserving working directory.")
            logger.warning(f"Clean up your files in {self.root}")
            return

        if self.retain:
            logger.warning(f"Working files are located at {self.track_dir}")
            return

        logger.info(f"Cleaning up working directory: {self.root}")
        try:
            if self.track_dir.exists():
                for path in self.intermediate_files():
                    path.unlink(missing_ok=True)
                self.track_dir.rmdir()
            if self.model_dir.exists():
                self.model_dir.rmdir()
            self.root.rmdir()
        except OSError as e:
            raise WorkspaceError(f"Could not clean up {self.root}: {e}") from e

    def __enter__(self) -> 'Workspace':
        self.acquire()
        return self

    def __exit__(self, exc_type, exc, tb):
        try:
            self.release()
        except WorkspaceError as e:
            if exc is None:
                raise
            # Keep the original exception; report the cleanup failure
            logger.error(str(e))
        return False
