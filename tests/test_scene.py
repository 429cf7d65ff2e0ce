import json

import pytest

from flowmap_layout import FlowPair, load_scene, save_scene, scene_from_dict, scene_to_dict

SCENE = {
    "nodes": [
        {"x": 0.0, "y": 0.0, "value": 3.0},
        {"x": 100.0, "y": 0.0},
        {"x": 50.0, "y": 80.0, "value": 2.0},
    ],
    "flows": [
        {"start": 0, "end": 1, "value": 5.0, "ctrl": [50.0, 10.0]},
        {"start": 1, "end": 2, "value": 2.0, "value2": 1.0, "locked": True},
        {"start": 2, "end": 0, "value": 1.0, "end_shortening": 2.5,
         "start_clip_area": "POLYGON ((40 70, 60 70, 60 90, 40 90, 40 70))"},
    ],
    "config": {"n_iterations": 12, "draw_arrows": False},
}


def test_scene_from_dict_builds_model():
    model = scene_from_dict(SCENE)
    first, pair, last = model.flows

    assert len(model.nodes()) == 3
    assert model.node(0).value == 3.0
    assert model.node(1).value == 1.0
    assert first.ctrl == (50.0, 10.0)
    assert first.end is pair.start
    assert isinstance(pair, FlowPair)
    assert (pair.value1, pair.value2) == (2.0, 1.0)
    assert pair.locked
    assert last.end_shortening == 2.5
    assert last.start_clip_area is not None
    assert model.config.n_iterations == 12
    assert not model.config.draw_arrows


def test_scene_round_trip():
    model = scene_from_dict(SCENE)
    document = scene_to_dict(model)
    again = scene_to_dict(scene_from_dict(json.loads(json.dumps(document))))

    assert again == document
    assert document["flows"][1]["value2"] == 1.0
    assert document["flows"][2]["start_clip_area"].startswith("POLYGON")


def test_load_and_save(tmp_path):
    path = tmp_path / "scene.json"
    path.write_text(json.dumps(SCENE), encoding="utf-8")
    model = load_scene(path)
    model.flows[0].set_ctrl(40.0, 20.0)

    out = tmp_path / "out.json"
    save_scene(model, out)

    assert json.loads(out.read_text(encoding="utf-8"))["flows"][0]["ctrl"] == [40.0, 20.0]


@pytest.mark.parametrize(
    "document",
    [
        [],
        {"flows": []},
        {"nodes": [{"x": 0.0}], "flows": []},
        {"nodes": [{"x": 0.0, "y": 0.0}], "flows": [{"start": 0, "end": 3}]},
        {"nodes": [], "flows": [], "config": {"no_such_setting": 1}},
        {
            "nodes": [{"x": 0.0, "y": 0.0}, {"x": 10.0, "y": 0.0}],
            "flows": [{"start": 0, "end": 1, "start_clip_area": "POLYGON((oops"}],
        },
    ],
)
def test_malformed_documents_raise_value_error(document):
    with pytest.raises(ValueError):
        scene_from_dict(document)


def test_invalid_json_raises_value_error(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("{nodes", encoding="utf-8")

    with pytest.raises(ValueError):
        load_scene(path)


def test_broken_clip_area_in_file_raises_value_error(tmp_path):
    document = json.loads(json.dumps(SCENE))
    document["flows"][2]["start_clip_area"] = "POLYGON((oops"
    path = tmp_path / "scene.json"
    path.write_text(json.dumps(document), encoding="utf-8")

    with pytest.raises(ValueError, match="malformed scene document"):
        load_scene(path)


def test_scene_files_are_utf8(tmp_path):
    document = json.loads(json.dumps(SCENE))
    document["nodes"][0]["label"] = "Zürich"
    path = tmp_path / "scene.json"
    path.write_bytes(json.dumps(document, ensure_ascii=False).encode("utf-8"))

    model = load_scene(path)
    out = tmp_path / "out.json"
    save_scene(model, out)

    assert len(model.flows) == 3
    assert json.loads(out.read_bytes().decode("utf-8"))["nodes"][0]["value"] == 3.0
