from __future__ import annotations

from pathlib import Path

import pytest

from helpers import song_item
from midicue.analyze import analyze_cue_file
from midicue.cli import main
from midicue.timeline import CuePoint, CueTimeline, save_timeline


@pytest.fixture
def no_user_config(tmp_path: Path) -> list:
    return ["--config", str(tmp_path / "no-config.yaml"), "--verbosity", "warning"]


def _timeline(tmp_path: Path, cues) -> Path:
    path = tmp_path / "song.yaml"
    save_timeline(CueTimeline(cues=cues, bpm=100.0, duration_seconds=20.0, item=song_item("Grace", "a", "b")), path)
    return path


def test_export_then_inspect(tmp_path: Path, no_user_config: list, capsys) -> None:
    tl = _timeline(tmp_path, [CuePoint(0, 0.0), CuePoint(1, 4.0), CuePoint(60, 9.5)])
    out = tmp_path / "out" / "song.mid"

    main(no_user_config + ["export", "--timeline", str(tl), "--out", str(out)])
    assert out.exists()
    assert "cues=3" in capsys.readouterr().out

    res = analyze_cue_file(out)
    assert res.bpm == pytest.approx(100.0)
    assert [c.index for c in res.cues] == [0, 1, 60]

    main(no_user_config + ["inspect", str(out)])
    text = capsys.readouterr().out
    assert "slide 1" in text
    assert "blank" in text
    assert "Grace" in text


def test_export_bpm_override_and_default_output(tmp_path: Path, no_user_config: list) -> None:
    tl = _timeline(tmp_path, [CuePoint(0, 1.0)])
    main(no_user_config + ["export", "--timeline", str(tl), "--bpm", "140", "--no-payload"])
    res = analyze_cue_file(tmp_path / "song.mid")
    assert res.bpm == pytest.approx(140.0, rel=1e-5)
    assert res.payload is None


def test_missing_input_exits_1(tmp_path: Path, no_user_config: list, capsys) -> None:
    with pytest.raises(SystemExit) as exc:
        main(no_user_config + ["inspect", str(tmp_path / "nope.mid")])
    assert exc.value.code == 1
    assert "Input not found" in capsys.readouterr().err


def test_timeline_without_playable_cues_exits_2(tmp_path: Path, no_user_config: list, capsys) -> None:
    tl = _timeline(tmp_path, [CuePoint(200, 1.0)])
    with pytest.raises(SystemExit) as exc:
        main(no_user_config + ["export", "--timeline", str(tl)])
    assert exc.value.code == 2
    assert "no encodable cues" in capsys.readouterr().err
