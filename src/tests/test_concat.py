"""
Tests for clip ordering, duration probing and concatenation.
"""

import os
import sys

import pytest

from src.slp_to_video import concat
from src.slp_to_video.concat import (
    ProbeError,
    clip_ordinal,
    concatenate_videos,
    get_minimum_duration,
    list_clips,
    minimum_duration,
    write_concat_list,
)
from src.slp_to_video.config import RunConfig, sibling_ffprobe
from src.slp_to_video.materialize import OUTPUT_PATH_FILE

FAKE_FFMPEG = """\
import sys
args = sys.argv[1:]
concat_list = args[args.index("-i") + 1]
with open(args[-1], "w") as out:
    out.write(open(concat_list).read())
"""


FAKE_FFPROBE = """\
import json, sys
open(sys.argv[0] + ".args", "w").write("\\n".join(sys.argv[1:]))
streams = [
    {"codec_type": "video", "duration": "8.016"},
    {"codec_type": "audio", "duration": "7.9"},
    {"codec_type": "audio", "duration": "2.0"},
]
print(json.dumps({"streams": streams, "format": {"duration": "8.1"}}))
"""


def make_script(path, body):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(f"#!{sys.executable}\n" + body)
    path.chmod(0o755)
    return str(path)


def make_fake_ffmpeg(tmp_path):
    return make_script(tmp_path / "ffmpeg", FAKE_FFMPEG)


def test_clips_sorted_numerically(tmp_path):
    for i in range(11):
        suffix = "-overlaid.avi" if i % 3 == 0 else "-trimmed.avi"
        (tmp_path / f"{i}{suffix}").write_text("")
    (tmp_path / "2.json").write_text("{}")
    (tmp_path / "2-merged-blackdetect.json").write_text("[]")
    (tmp_path / OUTPUT_PATH_FILE).write_text("out.avi")

    names = [p.name for p in list_clips(tmp_path)]

    assert [clip_ordinal(n) for n in names] == list(range(11))
    assert names.index("9-trimmed.avi") < names.index("10-trimmed.avi")


def test_minimum_duration_takes_shorter_stream():
    info = {
        "streams": [
            {"codec_type": "video", "duration": "12.345"},
            {"codec_type": "audio", "duration": "12.300"},
        ],
        "format": {"duration": "12.4"},
    }
    assert minimum_duration(info) == pytest.approx(12.3)


def test_minimum_duration_falls_back_to_container():
    info = {"streams": [{"codec_type": "video", "duration": "N/A"}], "format": {"duration": "4.5"}}
    assert minimum_duration(info) == 4.5


def test_minimum_duration_without_any_duration():
    with pytest.raises(ProbeError):
        minimum_duration({"streams": [], "format": {}})


@pytest.mark.asyncio
async def test_get_minimum_duration_runs_given_ffprobe(tmp_path):
    ffprobe = make_script(tmp_path / "bin" / "ffprobe", FAKE_FFPROBE)
    clip = tmp_path / "0-trimmed.avi"
    clip.write_text("")

    assert await get_minimum_duration(clip, ffprobe) == pytest.approx(7.9)
    assert (tmp_path / "bin" / "ffprobe.args").read_text().split("\n")[-1] == str(clip)


@pytest.mark.asyncio
async def test_get_minimum_duration_ffprobe_failure(tmp_path):
    ffprobe = make_script(tmp_path / "ffprobe", "import sys\nsys.stderr.write('bad input')\nsys.exit(1)\n")

    with pytest.raises(ProbeError, match="bad input"):
        await get_minimum_duration(tmp_path / "0-trimmed.avi", ffprobe)


@pytest.mark.parametrize(
    "ffmpeg, expected",
    [
        ("ffmpeg", "ffprobe"),
        (os.path.join("opt", "ff", "ffmpeg"), os.path.join("opt", "ff", "ffprobe")),
        (
            os.path.join("opt", "ffmpeg-6.1", "bin", "ffmpeg.exe"),
            os.path.join("opt", "ffmpeg-6.1", "bin", "ffprobe.exe"),
        ),
        (os.path.join("opt", "bin", "avconv"), "ffprobe"),
    ],
)
def test_ffprobe_found_next_to_ffmpeg(ffmpeg, expected):
    assert sibling_ffprobe(ffmpeg) == expected
    assert RunConfig(input_file="b.json", ffmpeg_path=ffmpeg).prober_path == expected
    assert RunConfig(input_file="b.json", ffmpeg_path=ffmpeg, ffprobe_path="probe").prober_path == "probe"


def test_write_concat_list(tmp_path):
    clips = [tmp_path / "0-trimmed.avi", tmp_path / "1-overlaid.avi"]
    out = tmp_path / "concat.txt"

    write_concat_list(out, clips, [3.5, 7.25])

    assert out.read_text().splitlines() == [
        f"file '{clips[0]}'",
        "inpoint 0.0",
        "outpoint 3.5",
        f"file '{clips[1]}'",
        "inpoint 0.0",
        "outpoint 7.25",
    ]


@pytest.mark.asyncio
async def test_concatenate_videos(tmp_path, monkeypatch):
    durations = {"0-trimmed.avi": 3.0, "1-overlaid.avi": 4.0, "2-trimmed.avi": 5.0}

    async def fake_duration(video, ffprobe_path="ffprobe"):
        return durations[video.name]

    monkeypatch.setattr(concat, "get_minimum_duration", fake_duration)
    target_dir = tmp_path / "tmp-target"
    target_dir.mkdir()
    for name in durations:
        (target_dir / name).write_text("")
    output = tmp_path / "final.avi"
    (target_dir / OUTPUT_PATH_FILE).write_text(str(output))

    result = await concatenate_videos(target_dir, make_fake_ffmpeg(tmp_path))

    assert result == str(output)
    lines = output.read_text().splitlines()
    assert [ln for ln in lines if ln.startswith("file ")] == [
        f"file '{target_dir / name}'" for name in ["0-trimmed.avi", "1-overlaid.avi", "2-trimmed.avi"]
    ]
    assert [ln for ln in lines if ln.startswith("outpoint ")] == [
        "outpoint 3.0", "outpoint 4.0", "outpoint 5.0",
    ]


@pytest.mark.asyncio
async def test_concatenate_skips_target_without_clips(tmp_path):
    (tmp_path / OUTPUT_PATH_FILE).write_text(str(tmp_path / "final.avi"))

    assert await concatenate_videos(tmp_path, "does-not-exist") is None
    assert not (tmp_path / "final.avi").exists()
