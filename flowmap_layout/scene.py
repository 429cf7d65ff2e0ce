"""JSON scene documents: nodes, flows and optional layout settings."""

from __future__ import annotations

import dataclasses
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

from shapely.errors import ShapelyError

from .geometry.flow_pair import FlowPair
from .layout.config import layout_config_from_mapping
from .layout.model import LayoutConfig, Model

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def scene_from_dict(document: Mapping[str, Any], config: Optional[LayoutConfig] = None) -> Model:
    """Build a model; ``config`` overrides the document's own settings."""

    if not isinstance(document, Mapping):
        raise ValueError("scene document must be a JSON object")
    nodes = document.get("nodes")
    flows = document.get("flows", [])
    if not isinstance(nodes, list) or not isinstance(flows, list):
        raise ValueError("scene document needs a 'nodes' list and a 'flows' list")

    model = Model(config if config is not None else layout_config_from_mapping(document.get("config")))
    try:
        handles = [model.add_node(float(n["x"]), float(n["y"]), float(n.get("value", 1.0))) for n in nodes]
        for index, item in enumerate(flows):
            start = handles[int(item["start"])]
            end = handles[int(item["end"])]
            ctrl = item.get("ctrl")
            ctrl_xy = (float(ctrl[0]), float(ctrl[1])) if ctrl is not None else None
            if "value2" in item:
                flow = model.add_flow_pair(start, end, float(item.get("value", 1.0)), float(item["value2"]), ctrl_xy)
            else:
                flow = model.add_flow(start, end, float(item.get("value", 1.0)), ctrl_xy)
            flow.locked = bool(item.get("locked", False))
            flow.start_shortening = float(item.get("start_shortening", 0.0))
            flow.end_shortening = float(item.get("end_shortening", 0.0))
            if isinstance(flow, FlowPair):
                flow.update_shortening_flow2(
                    float(item.get("start_shortening2", 0.0)), float(item.get("end_shortening2", 0.0))
                )
            flow.set_clip_areas_wkt(item.get("start_clip_area"), item.get("end_clip_area"))
    except (KeyError, IndexError, TypeError, ShapelyError) as exc:
        raise ValueError(f"malformed scene document: {exc}") from exc

    logger.info("Loaded scene with %d nodes and %d flows", len(handles), len(model.flows))
    return model


def scene_to_dict(model: Model) -> Dict[str, Any]:
    nodes = model.nodes()
    index = {id(p): i for i, p in enumerate(nodes)}
    flows: List[Dict[str, Any]] = []
    for flow in model.flows:
        item: Dict[str, Any] = {
            "start": index[id(flow.start)],
            "end": index[id(flow.end)],
            "ctrl": [flow.cx, flow.cy],
            "locked": flow.locked,
            "start_shortening": flow.start_shortening,
            "end_shortening": flow.end_shortening,
        }
        if isinstance(flow, FlowPair):
            item["value"] = flow.value1
            item["value2"] = flow.value2
            item["start_shortening2"] = flow.start_shortening2
            item["end_shortening2"] = flow.end_shortening2
        else:
            item["value"] = flow.value
        if flow.start_clip_area_wkt:
            item["start_clip_area"] = flow.start_clip_area_wkt
        if flow.end_clip_area_wkt:
            item["end_clip_area"] = flow.end_clip_area_wkt
        flows.append(item)
    return {
        "nodes": [{"x": p.x, "y": p.y, "value": p.value} for p in nodes],
        "flows": flows,
        "config": dataclasses.asdict(model.config),
    }


def load_scene(path: PathLike, config: Optional[LayoutConfig] = None) -> Model:
    try:
        document = json.loads(Path(path).read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValueError(f"{path}: invalid JSON: {exc}") from exc
    return scene_from_dict(document, config)


def save_scene(model: Model, path: PathLike) -> None:
    Path(path).write_text(json.dumps(scene_to_dict(model), indent=2), encoding="utf-8")
    logger.info("Wrote scene to %s", path)


__all__ = ["load_scene", "save_scene", "scene_from_dict", "scene_to_dict"]
