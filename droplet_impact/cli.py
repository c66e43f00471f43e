"""CLI entry point for droplet-impact."""
import argparse
import logging
import os
import sys

from droplet_impact.config import CASE_FILENAME, OUTPUTS_PREFIX


def _has_case(directory):
    return os.path.isfile(os.path.join(directory, CASE_FILENAME))


def resolve_case_dir(path):
    """
    Case directory named by ``path``.

    ``path`` may be the case directory, its case.json, or one of its
    ``outputs_<label>`` directories, which resolves to the case above it.
    """
    path = os.path.abspath(path)
    if os.path.isfile(path):
        if os.path.basename(path) == CASE_FILENAME:
            return os.path.dirname(path)
        raise argparse.ArgumentTypeError(
            f"Expected {CASE_FILENAME} or a directory containing it, got: {path}"
        )
    if not os.path.isdir(path):
        raise argparse.ArgumentTypeError(f"Path does not exist: {path}")
    parent = os.path.dirname(path)
    if (os.path.basename(path).startswith(OUTPUTS_PREFIX)
            and not _has_case(path) and _has_case(parent)):
        return parent
    return path


def _load_case(case_dir):
    """Schema-check then load case.json; exit 1 with a message on failure."""
    import json

    from droplet_impact.config import ImpactConfig
    from droplet_impact.schema import validate_case

    try:
        with open(os.path.join(case_dir, CASE_FILENAME)) as f:
            validate_case(json.load(f))
        return ImpactConfig.from_case(case_dir)
    except Exception as e:
        print(f"Invalid: {e}", file=sys.stderr)
        sys.exit(1)


def cmd_validate(args):
    """Validate a case directory (schema, model and derived constants)."""
    from droplet_impact.parameters import ConfigurationError, derive_constants

    config = _load_case(args.case_dir)
    try:
        derived = derive_constants(config)
    except ConfigurationError as e:
        print(f"Invalid: {e}", file=sys.stderr)
        sys.exit(1)
    print(f"Valid case: {config.run_label}")
    print(f"  Re = {config.reynolds:g}, We = {config.weber:g}, Fr = {config.froude:g}")
    print(f"  Levels {config.min_level}..{config.max_level}, box {config.box_width:g}")
    print(f"  Run horizon: {derived.max_time:g}")


def cmd_info(args):
    """Show the derived constants of a case."""
    from droplet_impact.parameters import ConfigurationError, derive_constants
    from droplet_impact.run import output_directory

    config = _load_case(args.case_dir)
    try:
        derived = derive_constants(config)
    except ConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    print(f"Case:    {args.case_dir}")
    print(f"Label:   {config.run_label}")
    print(f"Outputs: {output_directory(args.case_dir, config)}")
    print(f"Min cell size:        {derived.min_cell_size:g}")
    print(f"Drop refined width:   {derived.drop_refined_width:g}")
    print(f"Plate refined width:  {derived.plate_refined_width:g}")
    print(f"Impact time:          {derived.impact_time:g}")
    print(f"Run horizon:          {derived.max_time:g}")
    print(f"Interpolate distance: {derived.interpolate_distance:g}")


def cmd_run(args):
    """Run a droplet impact case."""
    from droplet_impact.callbacks import LoggingCallback
    from droplet_impact.run import run_sim

    level = logging.DEBUG if args.verbose else logging.INFO
    state = run_sim(args.case_dir, callback=LoggingCallback(), max_steps=args.max_steps,
                    console_level=level)
    if not state.finished:
        sys.exit(1)


def _impact_time_for(output_dir):
    """Impact time of the case an output directory belongs to, or 0."""
    from droplet_impact.config import ImpactConfig
    from droplet_impact.parameters import derive_constants

    case_dir = os.path.dirname(os.path.abspath(output_dir))
    if not _has_case(case_dir):
        return 0.0
    return derive_constants(ImpactConfig.from_case(case_dir)).impact_time


def cmd_analyse(args):
    """Plate force history of a run, compared with Wagner theory."""
    from droplet_impact import analysis

    impact_time = args.impact_time
    if impact_time is None:
        impact_time = _impact_time_for(args.output_dir)
    try:
        history = analysis.force_history(args.output_dir, impact_time=impact_time)
    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    history = analysis.compare_with_wagner(history)
    path = analysis.write_force_csv(
        history, os.path.join(args.output_dir, analysis.FORCE_FILENAME)
    )
    print(f"Force history: {path} ({len(history)} samples)")
    if args.plot:
        plot_path = analysis.plot_force(
            history, os.path.join(args.output_dir, analysis.PLOT_FILENAME)
        )
        print(f"Plot: {plot_path}")


def main(argv=None):
    parser = argparse.ArgumentParser(
        prog="droplet-impact",
        description="Axisymmetric droplet-on-plate impact runs",
    )
    subparsers = parser.add_subparsers(dest="command")

    # --- run ---
    run_parser = subparsers.add_parser("run", help="Run a droplet impact case")
    run_parser.add_argument(
        "case_dir", type=resolve_case_dir,
        help="Path to case.json or directory containing it",
    )
    run_parser.add_argument("--max-steps", type=int, default=None)
    run_parser.add_argument("--verbose", "-v", action="store_true")

    # --- validate ---
    val_parser = subparsers.add_parser("validate", help="Validate a case")
    val_parser.add_argument(
        "case_dir", type=resolve_case_dir,
        help="Path to case.json or directory containing it",
    )

    # --- info ---
    info_parser = subparsers.add_parser("info", help="Show derived constants")
    info_parser.add_argument(
        "case_dir", type=resolve_case_dir,
        help="Path to case.json or directory containing it",
    )

    # --- analyse ---
    an_parser = subparsers.add_parser(
        "analyse", help="Plate force history from plate_output files"
    )
    an_parser.add_argument("output_dir", help="Path to a run's outputs directory")
    an_parser.add_argument(
        "--impact-time", type=float, default=None,
        help="Shift times by this much (default: from the case above output_dir)",
    )
    an_parser.add_argument("--plot", action="store_true", help="Also write a PNG plot")

    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_help()
        sys.exit(1)

    commands = {
        "run": cmd_run,
        "validate": cmd_validate,
        "info": cmd_info,
        "analyse": cmd_analyse,
    }
    commands[args.command](args)


if __name__ == "__main__":
    main()
