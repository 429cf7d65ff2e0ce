import json

import pytest

import flowmap_layout.__main__ as cli

SCENE = {
    "nodes": [{"x": 0.0, "y": 0.0}, {"x": 10.0, "y": 0.0}, {"x": 5.0, "y": 8.0}],
    "flows": [{"start": 0, "end": 1, "value": 1.0}],
    "config": {"move_flows_overlapping_obstacles": False},
}


def _write_scene(tmp_path, document=SCENE):
    path = tmp_path / "scene.json"
    path.write_text(json.dumps(document), encoding="utf-8")
    return path


def test_main_writes_laid_out_scene(tmp_path, capsys):
    scene_path = _write_scene(tmp_path)
    out_path = tmp_path / "out.json"

    cli.main([str(scene_path), "--iterations", "30", "--output", str(out_path), "--report"])

    document = json.loads(out_path.read_text(encoding="utf-8"))
    assert document["config"]["n_iterations"] == 30
    assert document["flows"][0]["ctrl"][1] < 0.0
    assert "flow intersections" in capsys.readouterr().out


def test_main_prints_scene_without_output_path(tmp_path, capsys):
    scene_path = _write_scene(tmp_path)

    cli.main([str(scene_path), "--iterations", "2", "--no-shortening"])

    document = json.loads(capsys.readouterr().out)
    assert document["config"]["shorten_flows_to_reduce_overlaps"] is False
    assert len(document["flows"]) == 1


def test_main_passes_overrides_to_layout(tmp_path, monkeypatch, capsys):
    scene_path = _write_scene(tmp_path)
    seen = []

    monkeypatch.setattr(cli, "run_layout", lambda model: seen.append(model.config))

    cli.main([str(scene_path), "--iterations", "7", "--no-shortening"])

    assert seen[0].n_iterations == 7
    assert seen[0].shorten_flows_to_reduce_overlaps is False
    assert json.loads(capsys.readouterr().out)["flows"][0]["ctrl"] == [5.0, 0.0]


def test_main_exits_on_malformed_scene(tmp_path):
    scene_path = _write_scene(tmp_path, {"flows": []})

    with pytest.raises(SystemExit) as excinfo:
        cli.main([str(scene_path)])
    assert excinfo.value.code == 1


def test_main_exits_on_missing_file(tmp_path):
    with pytest.raises(SystemExit):
        cli.main([str(tmp_path / "missing.json")])


def test_main_exits_on_broken_clip_area(tmp_path, caplog):
    document = json.loads(json.dumps(SCENE))
    document["flows"][0]["end_clip_area"] = "POLYGON((oops"
    scene_path = _write_scene(tmp_path, document)

    with pytest.raises(SystemExit) as excinfo:
        cli.main([str(scene_path)])
    assert excinfo.value.code == 1
    assert any("malformed scene document" in record.getMessage() for record in caplog.records)
