import sys
from pathlib import Path

# Add the parent directory to the path so we can import cli
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import cli

SAMPLE_VTT = """WEBVTT

00:00:01.000 --> 00:00:02.000
Hello there
"""

SAMPLE_ASS = """[Script Info]
PlayResX: 1280
PlayResY: 720

[V4+ Styles]
Format: Name, Fontname, Fontsize
Style: Default,Arial,40
"""


def test_convert_command(tmp_path, capsys):
    source = tmp_path / "episode.vtt"
    source.write_text(SAMPLE_VTT, encoding="utf-8")

    assert cli.main(["convert", "--input", str(source)]) == 0
    output = tmp_path / "episode_converted.ass"
    assert output.exists()
    assert "Hello there" in output.read_text(encoding="utf-8")
    assert "Conversion completed successfully" in capsys.readouterr().out

def test_resample_command_with_crlf_and_bom(tmp_path):
    source = tmp_path / "episode.ass"
    source.write_text(SAMPLE_ASS, encoding="utf-8")
    target = tmp_path / "out.ass"

    assert cli.main(["resample", "--input", str(source), "--output", str(target), "--crlf", "--bom"]) == 0
    raw = target.read_bytes()
    assert raw.startswith(b"\xef\xbb\xbf[Script Info]\r\n")
    assert b"Style: Default,Basic Comical NC,60\r\n" in raw

def test_resample_rejects_non_ass(tmp_path, capsys):
    source = tmp_path / "episode.vtt"
    source.write_text(SAMPLE_VTT, encoding="utf-8")

    assert cli.main(["resample", "--input", str(source)]) == 1
    assert "only accepts .ass" in capsys.readouterr().out

def test_to_srt_command(tmp_path):
    source = tmp_path / "episode.vtt"
    source.write_text(SAMPLE_VTT, encoding="utf-8")

    assert cli.main(["to-srt", "--input", str(source)]) == 0
    srt = (tmp_path / "episode_converted.srt").read_text(encoding="utf-8")
    assert "00:00:01,000 --> 00:00:02,000" in srt

def test_missing_input(tmp_path, capsys):
    assert cli.main(["convert", "--input", str(tmp_path / "missing.srt")]) == 1
    assert "does not exist" in capsys.readouterr().out

def test_failed_conversion_returns_error(tmp_path, capsys):
    source = tmp_path / "broken.json"
    source.write_text('{"captions": []}', encoding="utf-8")

    assert cli.main(["convert", "--input", str(source)]) == 1
    assert "Conversion failed" in capsys.readouterr().out

def test_no_command():
    assert cli.main([]) == 1
