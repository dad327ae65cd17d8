#!/usr/bin/env python
# scripts/run_simulation.py
"""CLI entry point for running simulation cases."""
import argparse
import logging
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from jax_edge.config.loader import load_case, save_config
from jax_edge.core.simulation import Simulation
from jax_edge.diagnostics.output import DumpWriter, save_checkpoint

log = logging.getLogger("run_simulation")


def find_case_file(name: str, base_dir: Path) -> Path:
    """Find case YAML file by name.

    Args:
        name: Case name (e.g., "linear_slab" or "gem/linear_slab") or a path
        base_dir: Base directory for examples (examples/)

    Returns:
        Path to the YAML file

    Raises:
        FileNotFoundError: If case not found
    """
    # Check direct path
    if Path(name).exists():
        return Path(name)

    # Check with .yaml extension
    if Path(f"{name}.yaml").exists():
        return Path(f"{name}.yaml")

    cases_dir = base_dir / 'cases'

    # If name contains '/', treat as model/name
    if '/' in name:
        path = cases_dir / f"{name}.yaml"
        if path.exists():
            return path
    elif cases_dir.exists():
        for category in sorted(cases_dir.iterdir()):
            if category.is_dir():
                path = category / f"{name}.yaml"
                if path.exists():
                    return path

    raise FileNotFoundError(f"Case not found: {name}")


def list_cases(base_dir: Path) -> list:
    """List all available cases in model/name format."""
    cases = []
    cases_dir = base_dir / 'cases'
    if cases_dir.exists():
        for category in cases_dir.iterdir():
            if category.is_dir():
                for yaml_file in category.glob("*.yaml"):
                    cases.append(f"{category.name}/{yaml_file.stem}")
    return sorted(cases)


def run_case(yaml_path: Path, args) -> Simulation:
    """Run a single case and write its outputs.

    Args:
        yaml_path: Path to case YAML file
        args: Parsed command-line arguments

    Returns:
        The finished Simulation
    """
    config = load_case(yaml_path)
    time_config = config.setdefault('time', {})
    if args.t_end is not None:
        time_config['t_end'] = args.t_end
    if args.dt is not None:
        time_config['dt'] = args.dt
    t_end = float(time_config.get('t_end', 1.0))
    output_every = int(config.get('output', {}).get('every', 1))

    run_dir = args.output_dir / yaml_path.stem
    run_dir.mkdir(parents=True, exist_ok=True)
    save_config(config, run_dir / 'case.yaml')

    sim = Simulation.from_config(config)
    model = sim.model

    log.info(f"Running {yaml_path.stem} ({model.name}) to t={t_end:.4e}, output in {run_dir}")

    with DumpWriter(run_dir / 'dump.h5') as writer:
        writer.save_once(model.saved_once())
        writer.append(sim.state, model.diagnostics(sim.state))

        def write_output(state):
            if state.step % output_every == 0:
                writer.append(state, model.diagnostics(state))

        sim.run(t_end, callback=write_output)

    if args.checkpoint:
        save_checkpoint(sim.state, sim.geometry, run_dir / 'final.h5',
                        metadata={"case": yaml_path.stem, "model": model.name})

    if args.plots:
        from jax_edge.diagnostics.plotting import plot_poloidal_slice, plot_time_history
        plot_time_history(sim.history, save_path=run_dir / 'history.png')
        for name in model.evolved_names:
            if sim.state[name].ndim == 3:
                plot_poloidal_slice(sim.state[name], sim.geometry, title=name,
                                    save_path=run_dir / f'{name}.png')

    return sim


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Run edge turbulence simulation cases",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s --list                    List available cases
  %(prog)s linear_slab               Run specific case
  %(prog)s drift/lapd_slab           Run with model prefix
  %(prog)s path/to/case.yaml         Run a case file
        """
    )
    parser.add_argument('cases', nargs='*', help="Case names or files to run")
    parser.add_argument('--list', action='store_true', help="List available cases")
    parser.add_argument('--log-level', default='INFO',
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'])
    parser.add_argument('--output-dir', type=Path, default=Path('outputs'),
                        help="Base directory for outputs (default: outputs/)")
    parser.add_argument('--t-end', type=float, default=None, help="Override the end time")
    parser.add_argument('--dt', type=float, default=None, help="Override the timestep")
    parser.add_argument('--plots', dest='plots', action='store_true', default=True,
                        help="Generate plots (default)")
    parser.add_argument('--no-plots', dest='plots', action='store_false',
                        help="Skip plot generation")
    parser.add_argument('--checkpoint', dest='checkpoint', action='store_true', default=True,
                        help="Save final checkpoint (default)")
    parser.add_argument('--no-checkpoint', dest='checkpoint', action='store_false',
                        help="Skip final checkpoint")
    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    base_dir = Path(__file__).parent.parent / 'examples'

    if args.list:
        print("Available cases:")
        for case in list_cases(base_dir):
            print(f"  {case}")
        return 0

    if not args.cases:
        parser.print_help()
        return 2

    case_files = []
    for name in args.cases:
        try:
            case_files.append(find_case_file(name, base_dir))
        except FileNotFoundError as e:
            logging.error(str(e))
            return 2

    all_success = True
    for case_file in case_files:
        try:
            run_case(case_file, args)
        except Exception:
            logging.exception(f"Error running {case_file}")
            all_success = False

    return 0 if all_success else 1


if __name__ == '__main__':
    sys.exit(main())
