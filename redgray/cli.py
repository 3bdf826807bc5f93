from __future__ import annotations

import argparse
from typing import Sequence

from redgray.config import CLASS_COLUMN_TYPES, INPUT_TYPES, LayoutConfig, RunConfig
from redgray.errors import RedGrayError
from redgray.logging import LOGGER, init_rerun
from redgray.runner import RedGrayRunner


def _parse_option(text: str) -> tuple[str, str]:
    key, sep, value = text.partition("=")
    if not sep or not key.strip():
        raise argparse.ArgumentTypeError(f"option must look like Key=Value, got {text!r}")
    return key.strip(), value.strip()


def _build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Red Gray Plus multi-point projection")
    parser.add_argument("input", type=str, help="input CSV file")
    parser.add_argument("output", type=str, help="output folder")
    parser.add_argument("--name", type=str, default="RedGrayPlus")
    parser.add_argument("--input-type", choices=INPUT_TYPES, default="csv")
    parser.add_argument("--class-column", choices=CLASS_COLUMN_TYPES, default="number")
    parser.add_argument("--max-rows", type=int, default=None)
    parser.add_argument("--ignore-rows", type=int, default=0)
    parser.add_argument("--frame-size", type=float, default=1500.0)
    parser.add_argument(
        "--neighbors",
        type=str,
        default=None,
        help="graph neighbors: an integer, one-third, one-fourth or one-fifth",
    )
    parser.add_argument("--visual-density", type=float, default=None)
    parser.add_argument("--threads", type=int, default=None)
    parser.add_argument("--replicates", type=int, default=None)
    parser.add_argument("--evaluation-k", type=int, default=None)
    parser.add_argument("--cosine", action="store_true")
    parser.add_argument("--display-graph", action="store_true")
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument(
        "--option",
        type=_parse_option,
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="named option, e.g. NumberOfNeighboursForBuildingGraph=one-fifth",
    )
    parser.add_argument("--rerun", action="store_true", help="stream snapshots to the rerun viewer")
    parser.add_argument("--quiet", action="store_true", help="disable console event output")
    return parser


def _layout_config(args: argparse.Namespace) -> LayoutConfig:
    config = LayoutConfig.from_options(dict(args.option))
    changes: dict[str, object] = {}
    if args.neighbors is not None:
        text = args.neighbors.strip().lower()
        changes["number_of_neighbors"] = int(text) if text.isdigit() else text
    if args.visual_density is not None:
        changes["visual_density"] = args.visual_density
    if args.threads is not None:
        changes["number_of_threads"] = args.threads
    if args.replicates is not None:
        changes["replication_budget"] = args.replicates
    if args.evaluation_k is not None:
        changes["evaluation_neighborhood_size"] = args.evaluation_k
    if args.cosine:
        changes["cosine_normalization"] = True
    if args.display_graph:
        changes["display_neighborhood_graph"] = True
    if args.seed is not None:
        changes["seed"] = args.seed
    return config.with_overrides(**changes) if changes else config


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_arg_parser()
    args = parser.parse_args(argv)
    LOGGER.set_console(not args.quiet)
    try:
        layout_config = _layout_config(args)
        run_config = RunConfig(
            input_path=args.input,
            output_folder=args.output,
            name=args.name,
            input_type=args.input_type,
            class_column=args.class_column,
            max_input_rows=args.max_rows,
            ignore_rows=args.ignore_rows,
            frame_size=args.frame_size,
            rerun=args.rerun,
        )
    except RedGrayError as exc:
        parser.error(str(exc))
    if run_config.rerun:
        init_rerun(app_id="redgray")
    result = RedGrayRunner(run_config, layout_config).run()
    for key, paths in result.files.items():
        print(f"{key}: {paths['points']}")
    print(f"finished {run_config.name}, output folder: {run_config.output_folder}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
