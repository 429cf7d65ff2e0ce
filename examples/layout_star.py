"""Example pipeline: build a small origin-destination map and lay out its flows."""

import dataclasses

from flowmap_layout import FlowPair, Model, get_default_layout_config, run_layout, scene_to_dict

# hub, then destinations around it
NODES = [
    (0.0, 0.0, 5.0),
    (100.0, 10.0, 1.0),
    (-60.0, 80.0, 2.0),
    (-70.0, -60.0, 1.0),
    (40.0, -90.0, 3.0),
]

FLOWS = [
    (0, 1, 8.0),
    (0, 2, 3.0),
    (3, 0, 4.0),
    (0, 4, 6.0),
    (3, 1, 2.0),
]


class PrintingMonitor:
    def report_progress(self, percent: int) -> None:
        if percent % 25 == 0:
            print(f"  {percent}%")

    def is_cancelled(self) -> bool:
        return False


def main() -> None:
    config = dataclasses.replace(get_default_layout_config(), n_iterations=40, reference_map_scale=2.0)
    model = Model(config)
    handles = [model.add_node(x, y, value) for x, y, value in NODES]
    for start, end, value in FLOWS:
        model.add_flow(handles[start], handles[end], value)
    # return trip drawn as a parallel pair
    model.add_flow_pair(handles[2], handles[4], 2.0, 1.5)

    print("Laying out flows:")
    result = run_layout(model, monitor=PrintingMonitor())

    print(f"\nState: {result.state.value} after {result.iterations} iterations")
    print(result.report.summary())
    for flow in model.flows:
        kind = "pair" if isinstance(flow, FlowPair) else "flow"
        cx, cy = flow.ctrl
        print(
            f"{kind} ({flow.start.x:g}, {flow.start.y:g}) -> ({flow.end.x:g}, {flow.end.y:g}): "
            f"ctrl=({cx:.3f}, {cy:.3f}) shortening=({flow.start_shortening:.2f}, {flow.end_shortening:.2f})"
        )
    print(f"\nScene document has {len(scene_to_dict(model)['flows'])} flows")


if __name__ == "__main__":
    main()
