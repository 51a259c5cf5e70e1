"""Tests for mixdown, tagging and multitrack archiving."""

import pytest

from bdemucs.core.errors import MixdownError, OutputMoveError
from bdemucs.preprocessing.mixdown import build_mix_command, build_tag_command, create_instrumental
from bdemucs.preprocessing.multitrack import archive_stems


@pytest.fixture
def track_dir(tmp_path):
    path = tmp_path / 'ws' / 'htdemucs' / 'Song'
    path.mkdir(parents=True)
    for stem in ['bass', 'drums', 'other', 'vocals']:
        (path / f'{stem}.wav').write_bytes(b'RIFF')
    return path


def stems_in(track_dir, names=('bass', 'drums', 'other', 'vocals')):
    return {name: track_dir / f'{name}.wav' for name in names}


class TestCommands:
    """FFmpeg command lines."""

    def test_mix_uses_amix_longest(self, tmp_path):
        stems = [tmp_path / 'bass.wav', tmp_path / 'drums.wav', tmp_path / 'other.wav']
        cmd = build_mix_command(stems, tmp_path / 'tmp.flac')
        assert 'amix=inputs=3:duration=longest' in cmd
        assert cmd[-1] == str(tmp_path / 'tmp.flac')
        assert 'vocals.wav' not in ' '.join(cmd)

    def test_tag_command_copies_source_metadata(self, tmp_path):
        cmd = build_tag_command(tmp_path / 'Song.flac', tmp_path / 'tmp.flac',
                                'Foo (Instrumental)', tmp_path / 'out.flac')
        assert cmd[cmd.index('-map') + 1] == '1'
        assert cmd[cmd.index('-map_metadata') + 1] == '0'
        assert cmd[cmd.index('-metadata') + 1] == 'album=Foo (Instrumental)'
        assert cmd[cmd.index('-c') + 1] == 'copy'


class TestCreateInstrumental:
    """Mix, tag and move."""

    def test_writes_destination(self, fake_tools, make_input, track_dir, tmp_path):
        source = make_input()
        destination = tmp_path / 'out' / 'Artist' / '1994 Foo' / 'Song_instrumental.flac'

        result = create_instrumental(source, stems_in(track_dir), track_dir, 'Foo',
                                     ' (Instrumental)', destination)

        assert result == destination
        assert destination.is_file()
        assert not (track_dir / 'Song.tagged.flac').exists()
        mix_cmd, tag_cmd = fake_tools.commands('ffmpeg')
        assert 'amix=inputs=3:duration=longest' in mix_cmd
        assert 'album=Foo (Instrumental)' in tag_cmd
        assert tag_cmd[tag_cmd.index('-i') + 1] == str(source)

    def test_mixes_only_present_stems(self, fake_tools, make_input, track_dir, tmp_path):
        create_instrumental(make_input(), stems_in(track_dir, ('drums', 'vocals')), track_dir,
                            'Foo', '', tmp_path / 'out.flac')
        mix_cmd = fake_tools.commands('ffmpeg')[0]
        assert 'amix=inputs=1:duration=longest' in mix_cmd

    def test_ffmpeg_failure(self, fake_tools, make_input, track_dir, tmp_path):
        fake_tools.ffmpeg_returncode = 1
        destination = tmp_path / 'out.flac'
        with pytest.raises(MixdownError):
            create_instrumental(make_input(), stems_in(track_dir), track_dir, 'Foo', '', destination)
        assert not destination.exists()

    def test_input_named_like_mix_file(self, fake_tools, make_input, track_dir, tmp_path):
        source = make_input('tmp.flac')
        create_instrumental(source, stems_in(track_dir), track_dir, 'Foo', '', tmp_path / 'out.flac')

        mix_cmd, tag_cmd = fake_tools.commands('ffmpeg')
        inputs = [tag_cmd[i + 1] for i, arg in enumerate(tag_cmd) if arg == '-i']
        assert inputs == [str(source), mix_cmd[-1]]
        assert tag_cmd[-1] not in inputs
        assert tag_cmd[-1] == str(track_dir / 'tmp.tagged.flac')

    def test_no_instrumental_stems(self, fake_tools, make_input, track_dir, tmp_path):
        with pytest.raises(MixdownError):
            create_instrumental(make_input(), stems_in(track_dir, ('vocals',)), track_dir,
                                'Foo', '', tmp_path / 'out.flac')

    def test_move_failure(self, fake_tools, make_input, track_dir, tmp_path):
        blocker = tmp_path / 'blocked'
        blocker.write_bytes(b'file where a folder should be')
        with pytest.raises(OutputMoveError):
            create_instrumental(make_input(), stems_in(track_dir), track_dir, 'Foo', '',
                                blocker / 'Song_instrumental.flac')


class TestArchiveStems:
    """Multitrack relocation."""

    def test_moves_stem_folder(self, track_dir, tmp_path):
        (track_dir / 'tmp.flac').write_bytes(b'x')
        destination = tmp_path / 'mt' / 'Artist' / 'Foo' / 'Song'

        archive_stems(track_dir, destination)

        assert not track_dir.exists()
        assert sorted(p.name for p in destination.iterdir()) == [
            'bass.wav', 'drums.wav', 'other.wav', 'vocals.wav']

    def test_never_overwrites(self, track_dir, tmp_path):
        destination = tmp_path / 'mt' / 'Song'
        destination.mkdir(parents=True)
        (destination / 'keep.wav').write_bytes(b'x')

        with pytest.raises(OutputMoveError):
            archive_stems(track_dir, destination)
        assert (track_dir / 'bass.wav').exists()
        assert [p.name for p in destination.iterdir()] == ['keep.wav']
