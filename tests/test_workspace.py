"""Tests for workspace acquisition and release."""

import pytest

from bdemucs.core.errors import ShutdownRequested, WorkspaceError
from bdemucs.core.workspace import Workspace


def fill_track_dir(ws):
    ws.track_dir.mkdir(parents=True)
    for name in ['bass.wav', 'drums.wav', 'other.wav', 'vocals.wav', 'tmp.flac']:
        (ws.track_dir / name).write_bytes(b'x')


class TestWorkspace:
    """Scoped temporary directory."""

    def test_acquire_creates_unique_dirs(self, scratch):
        a = Workspace('htdemucs', 'Song', tmp_dir=scratch)
        b = Workspace('htdemucs', 'Song', tmp_dir=scratch)
        assert a.acquire() != b.acquire()
        assert a.root.name.startswith('bdemucs.')
        assert a.track_dir == a.root / 'htdemucs' / 'Song'

    def test_release_removes_everything(self, scratch):
        with Workspace('htdemucs', 'Song', tmp_dir=scratch) as ws:
            fill_track_dir(ws)
        assert list(scratch.iterdir()) == []

    def test_release_after_stems_moved(self, scratch):
        with Workspace('htdemucs', 'Song', tmp_dir=scratch) as ws:
            ws.model_dir.mkdir()
        assert list(scratch.iterdir()) == []

    def test_release_before_separation(self, scratch):
        with Workspace('htdemucs', 'Song', tmp_dir=scratch):
            pass
        assert list(scratch.iterdir()) == []

    def test_debug_keeps_workspace(self, scratch):
        with Workspace('htdemucs', 'Song', debug=True, tmp_dir=scratch) as ws:
            fill_track_dir(ws)
        assert (ws.track_dir / 'bass.wav').exists()

    def test_retained_workspace_kept(self, scratch):
        with Workspace('htdemucs', 'Song', tmp_dir=scratch) as ws:
            fill_track_dir(ws)
            ws.retain = True
        assert (ws.track_dir / 'vocals.wav').exists()

    def test_unknown_file_blocks_cleanup(self, scratch):
        with pytest.raises(WorkspaceError):
            with Workspace('htdemucs', 'Song', tmp_dir=scratch) as ws:
                fill_track_dir(ws)
                (ws.track_dir / 'stray.txt').write_bytes(b'x')
        assert (ws.track_dir / 'stray.txt').exists()
        assert not (ws.track_dir / 'bass.wav').exists()

    def test_cleanup_failure_does_not_mask_error(self, scratch):
        with pytest.raises(RuntimeError):
            with Workspace('htdemucs', 'Song', tmp_dir=scratch) as ws:
                fill_track_dir(ws)
                (ws.track_dir / 'stray.txt').write_bytes(b'x')
                raise RuntimeError('boom')

    def test_interrupt_still_cleans_up(self, scratch):
        with pytest.raises(ShutdownRequested):
            with Workspace('htdemucs', 'Song', tmp_dir=scratch) as ws:
                fill_track_dir(ws)
                raise ShutdownRequested(2)
        assert list(scratch.iterdir()) == []

    def test_release_runs_once(self, scratch):
        ws = Workspace('htdemucs', 'Song', tmp_dir=scratch)
        ws.acquire()
        ws.release()
        ws.release()
        assert list(scratch.iterdir()) == []

    def test_paths_need_acquire(self):
        with pytest.raises(WorkspaceError):
            Workspace('htdemucs', 'Song').track_dir
