import argparse
import dataclasses
import json
import logging
import sys
from typing import Optional, Sequence

from flowmap_layout import load_scene, run_layout, save_scene, scene_to_dict

logger = logging.getLogger(__name__)


def _configure_logging(level: str) -> None:
    log_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=log_level,
        format="%(levelname)s:%(name)s:%(message)s",
    )


def main(argv: Optional[Sequence[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Lay out flow map scenes")
    parser.add_argument("path", help="Path to the JSON scene document")
    parser.add_argument(
        "--iterations",
        type=int,
        help="Number of layout iterations (default: from the scene or 100)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Logging level (default: INFO)",
    )
    parser.add_argument(
        "--no-shortening",
        action="store_true",
        help="Skip shortening flow ends to reduce overlaps",
    )
    parser.add_argument(
        "--output",
        help="Write the laid out scene to the given path instead of stdout",
    )
    parser.add_argument(
        "--report",
        action="store_true",
        help="Print the layout quality report",
    )
    args = parser.parse_args(argv)

    _configure_logging(args.log_level)

    logger.info("Loading scene from %s", args.path)
    try:
        model = load_scene(args.path)
    except (OSError, ValueError) as exc:
        logger.error("Cannot load scene: %s", exc)
        raise SystemExit(1)

    overrides = {}
    if args.iterations is not None:
        if args.iterations < 0:
            logger.error("--iterations must not be negative")
            raise SystemExit(1)
        overrides["n_iterations"] = args.iterations
    if args.no_shortening:
        overrides["shorten_flows_to_reduce_overlaps"] = False
    if overrides:
        model.config = dataclasses.replace(model.config, **overrides)

    result = run_layout(model)

    if args.output:
        save_scene(model, args.output)
    else:
        print(json.dumps(scene_to_dict(model), indent=2))

    if args.report and result.report is not None:
        print(result.report.summary())


if __name__ == "__main__":
    main(sys.argv[1:])
