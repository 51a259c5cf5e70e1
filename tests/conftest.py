"""Shared fixtures: a fake ffprobe/demucs/ffmpeg and input file helpers."""

import json
import subprocess
from pathlib import Path

import pytest

from bdemucs.core.config import RunConfig
from bdemucs.core.graceful_shutdown import shutdown_requested


class FakeTools:
    """
    Stands in for subprocess.run and simulates the external tools.

    ffprobe answers with `tags` / `stream` / `duration`, demucs writes the
    stems listed in `stems`, ffmpeg writes its last argument.
    """

    def __init__(self):
        self.calls = []
        self.tags = {'ARTIST': 'Artist', 'ALBUM': 'Foo', 'DATE': '1994-03-01'}
        self.stream = {'codec_type': 'audio', 'sample_rate': '44100', 'bits_per_raw_sample': '16'}
        self.duration = '200.0'
        self.probe_returncode = 0
        self.demucs_returncode = 0
        self.stems = ['bass', 'drums', 'other', 'vocals']
        self.ffmpeg_returncode = 0
        self.demucs_hook = None

    def commands(self, tool):
        return [cmd for cmd in self.calls if cmd[0] == tool]

    def __call__(self, cmd, **kwargs):
        cmd = [str(c) for c in cmd]
        self.calls.append(cmd)
        tool = cmd[0]
        if tool == 'ffprobe':
            return self._ffprobe(cmd)
        if tool == 'demucs':
            return self._demucs(cmd)
        if tool == 'ffmpeg':
            return self._ffmpeg(cmd)
        raise AssertionError(f"Unexpected command: {cmd}")

    def _ffprobe(self, cmd):
        if self.probe_returncode != 0:
            return subprocess.CompletedProcess(cmd, self.probe_returncode, '', 'Invalid data found')
        report = {
            'streams': [dict(self.stream)],
            'format': {'duration': self.duration, 'tags': dict(self.tags)},
        }
        return subprocess.CompletedProcess(cmd, 0, json.dumps(report), '')

    def _demucs(self, cmd):
        if self.demucs_hook:
            self.demucs_hook(cmd)
        if self.demucs_returncode != 0:
            return subprocess.CompletedProcess(cmd, self.demucs_returncode, '', 'RuntimeError: boom')
        out_dir = Path(cmd[cmd.index('--out') + 1])
        model = cmd[cmd.index('-n') + 1]
        track_dir = out_dir / model / Path(cmd[-1]).stem
        track_dir.mkdir(parents=True, exist_ok=True)
        for stem in self.stems:
            (track_dir / f"{stem}.wav").write_bytes(b'RIFF')
        return subprocess.CompletedProcess(cmd, 0, 'done', '')

    def _ffmpeg(self, cmd):
        if self.ffmpeg_returncode != 0:
            return subprocess.CompletedProcess(cmd, self.ffmpeg_returncode, '', 'ffmpeg error')
        Path(cmd[-1]).write_bytes(b'fLaC')
        return subprocess.CompletedProcess(cmd, 0, '', '')


@pytest.fixture
def fake_tools(monkeypatch):
    tools = FakeTools()
    monkeypatch.setattr(subprocess, 'run', tools)
    return tools


@pytest.fixture
def config(tmp_path):
    return RunConfig(
        output_root=tmp_path / 'Instrumentals',
        multitrack_root=tmp_path / 'Multitracks',
        jobs=2,
        throttle_seconds=0,
    )


@pytest.fixture
def scratch(tmp_path):
    """Parent directory for workspaces, so tests can check it is left empty."""
    path = tmp_path / 'scratch'
    path.mkdir()
    return path


@pytest.fixture
def make_input(tmp_path):
    """Create a fake input file in tmp_path/in."""
    def _make(name='Song.flac', folder='in'):
        path = tmp_path / folder / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(b'not really audio')
        return path
    return _make


@pytest.fixture(autouse=True)
def reset_shutdown():
    shutdown_requested.clear()
    yield
    shutdown_requested.clear()
