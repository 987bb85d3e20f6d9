"""
Tests for stage naming, argument building and trim windows.
"""

import json
from pathlib import Path

import pytest

from src.slp_to_video.config import RunConfig
from src.slp_to_video.models import BlackFrame, CommandResult, TrimWindow
from src.slp_to_video.stages import (
    JobFiles,
    Stage,
    base_path,
    blackdetect_args,
    compute_trim_window,
    log_failures,
    merge_args,
    overlay_args,
    render_args,
    stage_output_path,
    trim_args,
)


@pytest.fixture
def job(tmp_path):
    descriptor = tmp_path / "4.json"
    descriptor.write_text(json.dumps({"replay": "g.slp", "overlayPath": "logo.png"}))
    return JobFiles.load(descriptor)


def test_stage_output_paths_chain_from_base(tmp_path):
    base = base_path(tmp_path / "7.json")

    assert base == tmp_path / "7"
    assert stage_output_path(Stage.RENDER_VIDEO, base) == tmp_path / "7.avi"
    assert stage_output_path(Stage.RENDER_AUDIO, base) == tmp_path / "7.wav"
    assert stage_output_path(Stage.MERGED, base) == tmp_path / "7-merged.avi"
    assert stage_output_path(Stage.BLACKDETECT, base) == tmp_path / "7-merged-blackdetect.json"
    assert stage_output_path(Stage.TRIMMED, base) == tmp_path / "7-trimmed.avi"
    assert stage_output_path(Stage.OVERLAID, base) == tmp_path / "7-overlaid.avi"


def test_trim_window_single_interval():
    window = compute_trim_window([BlackFrame(1.0, 2.0)])

    assert window == TrimWindow(start=2.0, end=None)
    assert window.filter_params() == "start=2.0"


def test_trim_window_two_intervals():
    window = compute_trim_window([BlackFrame(1.0, 2.0), BlackFrame(8.0, 9.0)])

    assert window == TrimWindow(start=2.0, end=8.0)
    assert window.filter_params() == "start=2.0:end=8.0"


def test_trim_window_without_black_frames_keeps_whole_clip():
    assert compute_trim_window([]) == TrimWindow(start=0.0, end=None)


def test_trim_window_uses_first_two_of_many():
    window = compute_trim_window([BlackFrame(0.0, 1.0), BlackFrame(5.0, 5.5), BlackFrame(9.0, 10.0)])

    assert window == TrimWindow(start=1.0, end=5.0)


def test_render_args(job):
    assert render_args(job, "/isos/SSBM.iso") == [
        "-i", str(job.descriptor), "-o", str(job.base), "-b", "-e", "/isos/SSBM.iso",
    ]


@pytest.mark.parametrize("widescreen_off,scale", [(False, "1920:1080"), (True, "1280:1056")])
def test_merge_args_scale_and_bitrate(job, widescreen_off, scale):
    config = RunConfig(input_file="batch.json", widescreen_off=widescreen_off, bitrate_kbps=8000)
    args = merge_args(job, config.bitrate_kbps, config.scale)

    assert args[args.index("-vf") + 1] == f"scale={scale}"
    assert args[args.index("-b:v") + 1] == "8000k"
    assert args[-1] == job.path(Stage.MERGED)
    assert job.path(Stage.RENDER_VIDEO) in args
    assert job.path(Stage.RENDER_AUDIO) in args


def test_blackdetect_args_discard_output(job):
    args = blackdetect_args(job)

    assert args[:2] == ["-i", job.path(Stage.MERGED)]
    assert args[-3:] == ["-f", "null", "-"]


def test_trim_args_filter_graph(job):
    args = trim_args(job, TrimWindow(2.0, 8.0), 15000)
    graph = args[args.index("-filter_complex") + 1]

    assert "[0:v]trim=start=2.0:end=8.0,setpts=PTS-STARTPTS[v1]" in graph
    assert "[0:a]atrim=start=2.0:end=8.0,asetpts=PTS-STARTPTS[a1]" in graph
    assert args[-1] == job.path(Stage.TRIMMED)


def test_overlay_args(job):
    args = overlay_args(job, 15000)

    assert args[args.index("-i") + 1] == job.path(Stage.TRIMMED)
    assert "logo.png" in args
    assert args[-1] == job.path(Stage.OVERLAID)


def test_overlay_args_require_overlay(tmp_path):
    descriptor = tmp_path / "0.json"
    descriptor.write_text(json.dumps({"replay": "g.slp", "overlayPath": None}))
    with pytest.raises(ValueError):
        overlay_args(JobFiles.load(descriptor), 15000)


def test_log_failures_only_warns(caplog):
    results = [
        CommandResult(["a"], 0),
        CommandResult(["b"], 1),
        CommandResult(["c"], -9),
    ]
    log_failures("dolphin", results, allow_signals=True)

    warned = [r.getMessage() for r in caplog.records]
    assert len(warned) == 1
    assert "code 1" in warned[0]


def test_job_files_base_strips_only_descriptor_extension(tmp_path):
    descriptor = tmp_path / "tmp-abc.d" / "10.json"
    descriptor.parent.mkdir()
    descriptor.write_text(json.dumps({"replay": "g.slp"}))
    job = JobFiles.load(descriptor)

    assert job.base == Path(tmp_path / "tmp-abc.d" / "10")
    assert job.overlay_path is None
