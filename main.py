"""
Habitat Destruction Simulator: CLI Entry Point

Usage:
    python main.py --mode single --config config/default_config.json
    python main.py --mode sweep --config config/default_config.json
    python main.py --mode single --pattern random --percentage 0.4 --rounds 100
"""

import argparse
import sys
import time
from pathlib import Path


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Habitat Destruction Simulator: two-species persistence under habitat loss",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py --mode single                                   Run one simulation with defaults
  python main.py --mode single --pattern random --percentage 0.3 One run, 30% random destruction
  python main.py --mode sweep --config config/default_config.json  Sweep destruction percentages
        """,
    )

    parser.add_argument(
        "--mode",
        choices=["single", "sweep"],
        default=None,
        help="Run mode: 'single' for one simulation, 'sweep' for a destruction-percentage sweep",
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to JSON config file (default: built-in defaults)",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Override random seed (overrides config value)",
    )
    parser.add_argument(
        "--pattern",
        choices=["random", "gradient"],
        default=None,
        help="Override destruction pattern",
    )
    parser.add_argument(
        "--percentage",
        type=float,
        default=None,
        help="Override destruction percentage in [0, 1] (single mode)",
    )
    parser.add_argument(
        "--rounds",
        type=int,
        default=None,
        help="Override phased-destruction rounds (0 = immediate)",
    )
    parser.add_argument(
        "--updates",
        type=int,
        default=None,
        help="Override number of updates per run",
    )
    parser.add_argument(
        "--sequential",
        action="store_true",
        help="Run sweep simulations in this process instead of a worker pool",
    )
    parser.add_argument(
        "--output",
        type=str,
        default=None,
        help="Override output directory",
    )

    return parser.parse_args(argv)


def build_config(args: argparse.Namespace):
    """Load the config (or defaults) and apply command-line overrides."""
    from habitat_sim.core.config import get_default_config, load_config

    config = load_config(args.config) if args.config else get_default_config()

    if args.seed is not None:
        config.world.seed = args.seed
        config.sweep.base_seed = args.seed
    if args.pattern is not None:
        config.destruction.pattern = args.pattern
    if args.percentage is not None:
        config.destruction.percentage = args.percentage
    if args.rounds is not None:
        config.destruction.rounds = args.rounds
    if args.updates is not None:
        config.run.updates = args.updates
    if args.output is not None:
        config.output.output_dir = args.output

    return config.check()


def run_single(config) -> None:
    """Run a single simulation."""
    from habitat_sim.logging.run_manager import RunManager
    from habitat_sim.simulation.engine import run_from_config

    d = config.destruction
    print(f"[Habitat Simulator] Single run")
    print(f"  Grid: {config.world.width}x{config.world.height}")
    print(f"  Seed: {config.world.seed}")
    print(f"  Destruction: {d.percentage:.2f} ({d.pattern}, rounds={d.rounds})")
    print(f"  Population: {config.population.mode} @ {config.population.initial_occupancy}")
    print(f"  Updates: {config.run.updates}")
    print()

    run_manager = RunManager(config)
    start_time = time.time()

    _, result = run_from_config(config)
    elapsed = time.time() - start_time
    run_manager.record_run(result, elapsed)

    counts = result.final_counts
    print(f"[Result]")
    print(f"  Species C: {counts.species_c}")
    print(f"  Species D: {counts.species_d}")
    print(f"  Empty: {counts.empty}")
    print(f"  Destroyed: {counts.destroyed}")
    if result.extinct:
        print(f"  Both species went extinct.")
    print(f"  Elapsed: {elapsed:.1f}s")
    print(f"  Output saved to: {run_manager.run_dir}")


def run_sweep(config, parallel: bool = True) -> None:
    """Run a destruction-percentage sweep."""
    from habitat_sim.logging.csv_logger import unique_path
    from habitat_sim.simulation.sweep import DestructionSweep

    sweep = DestructionSweep(config)
    s = config.sweep

    print(f"[Habitat Simulator] Destruction sweep")
    print(f"  Pattern: {config.destruction.pattern} (rounds={config.destruction.rounds})")
    print(f"  Range: {s.start:.2f} to {s.stop:.2f} step {s.step}")
    print(f"  Runs per percentage: {s.runs_per_set}")
    print(f"  Total simulations: {sweep.total_runs}")
    print()

    def progress_cb(done: int, total: int) -> None:
        pct = done / total * 100 if total > 0 else 100
        print(f"\r  Progress: {done}/{total} ({pct:.0f}%)", end="", flush=True)

    result = sweep.run(parallel=parallel, progress_callback=progress_cb)
    print()
    print()

    for entry in result.percentages:
        m = entry.mean_counts
        print(
            f"  Destruction: {entry.destruction:.2f}, "
            f"Species C: {m.get('species_c', 0):.1f}, Species D: {m.get('species_d', 0):.1f}, "
            f"Empty: {m.get('empty', 0):.1f}, Destroyed: {m.get('destroyed', 0):.1f}"
        )

    out_dir = unique_path(Path(config.output.output_dir) / f"sweep_{int(time.time())}")
    sweep.export_results(result, out_dir)

    print()
    print(f"[Sweep Results]")
    print(f"  Total runs: {result.total_runs}")
    print(f"  Elapsed: {result.elapsed_seconds:.1f}s")
    print(f"  Results exported to: {out_dir}")


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)

    if args.mode is None:
        print("Error: Specify --mode (single|sweep).")
        print("Run with --help for usage information.")
        sys.exit(1)

    try:
        config = build_config(args)
    except (FileNotFoundError, ValueError) as e:
        print(f"Error: {e}")
        sys.exit(1)

    if args.mode == "single":
        run_single(config)
    elif args.mode == "sweep":
        run_sweep(config, parallel=not args.sequential)


if __name__ == "__main__":
    main()
