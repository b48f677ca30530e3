#!/usr/bin/env python3
"""
Channel / flat-plate driver for the k-omega SST low-Re closure.

A prescribed mean-velocity profile is held fixed while the closure is
advanced in pseudo-time, so k, omega and nu_t relax to the equilibrium
of that profile.

Usage:
    python run_channel.py
    python run_channel.py configs/channel_decay.yaml
    python run_channel.py configs/channel_decay.yaml --n-steps 500 --f3
    python run_channel.py --walls lower --profile laminar --nj 48
"""

import sys
import argparse
from pathlib import Path

import numpy as np
from loguru import logger

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from sst_lowre.utils.logging import setup_logging
from sst_lowre.physics.jax_config import select_device, get_device_info
from sst_lowre.config import SimulationConfig, load_yaml, apply_cli_overrides, save_yaml
from sst_lowre.grid import channel_grid, flat_plate_grid, compute_metrics
from sst_lowre.solvers import wall_bounded_bcs
from sst_lowre.models import MeanFlow, create_model


def velocity_profile(wall_distance: np.ndarray, delta: float, u_bulk: float,
                     profile: str) -> np.ndarray:
    """
    Streamwise velocity as a function of wall distance.

    Parameters
    ----------
    wall_distance : ndarray
        Distance of each cell center to the nearest wall.
    delta : float
        Channel half-height or boundary-layer thickness.
    u_bulk : float
        Bulk (channel) or edge (plate) velocity.
    profile : str
        "turbulent": 1/7 power law, "laminar": parabola, "uniform".
    """
    eta = np.clip(wall_distance / delta, 0.0, 1.0)
    if profile == "turbulent":
        return u_bulk * (8.0 / 7.0) * eta ** (1.0 / 7.0)
    if profile == "laminar":
        return 1.5 * u_bulk * (2.0 * eta - eta ** 2)
    if profile == "uniform":
        return np.full_like(wall_distance, u_bulk)
    raise ValueError(f"Unknown velocity profile '{profile}'")


def build_case(config: SimulationConfig):
    """Grid, metrics and mean flow for the configured case."""
    g = config.grid
    wall_sides = config.wall_sides()

    if g.walls == "both":
        X, Y = channel_grid(g.ni, g.nj, g.length, g.height, g.ratio)
        delta = 0.5 * g.height
    else:
        X, Y = flat_plate_grid(g.ni, g.nj, g.length, g.height, g.ratio)
        delta = g.height

    mesh = compute_metrics(X, Y, wall_sides)

    if wall_sides:
        U = velocity_profile(mesh.wall_distance, delta, config.flow.u_bulk, config.flow.profile)
    else:
        U = np.full(mesh.volume.shape, config.flow.u_bulk)
    V = np.zeros_like(U)

    velocity_bcs = wall_bounded_bcs(wall_sides, 0.0, g.streamwise)
    mean_flow = MeanFlow(U=U, V=V, nu=config.flow.nu, u_bcs=velocity_bcs, v_bcs=velocity_bcs)
    return mesh, mean_flow


def log_fields(step: int, model) -> None:
    k, omega, nut = (np.asarray(f) for f in (model.k(), model.omega(), model.nut()))
    logger.info(
        f"step {step:5d} | k [{k.min():.3e}, {k.max():.3e}] "
        f"| omega [{omega.min():.3e}, {omega.max():.3e}] "
        f"| nut/nu max {nut.max() / model.nu:.3e}"
    )


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Relax the k-omega SST low-Re closure on a fixed channel profile"
    )
    parser.add_argument("config_file", nargs="?", default=None,
                        help="YAML configuration (default: built-in defaults)")

    # Flow conditions
    parser.add_argument("--nu", type=float, default=None,
                        help="Laminar kinematic viscosity")
    parser.add_argument("--u-bulk", dest="u_bulk", type=float, default=None,
                        help="Bulk velocity")
    parser.add_argument("--profile", choices=["turbulent", "laminar", "uniform"], default=None,
                        help="Mean velocity profile")
    parser.add_argument("--intensity", type=float, default=None,
                        help="Initial turbulence intensity")
    parser.add_argument("--viscosity-ratio", dest="viscosity_ratio", type=float, default=None,
                        help="Initial nu_t/nu")

    # Grid
    parser.add_argument("--ni", type=int, default=None, help="Streamwise cells")
    parser.add_argument("--nj", type=int, default=None, help="Wall-normal cells")
    parser.add_argument("--ratio", type=float, default=None, help="Wall-normal growth ratio")
    parser.add_argument("--walls", choices=["both", "lower", "none"], default=None,
                        help="Wall layout: channel, flat plate or none")

    # Model
    parser.add_argument("--limiter-rate", dest="limiter_rate", choices=["strain", "vorticity"],
                        default=None, help="Rate used by the eddy-viscosity limiter")
    parser.add_argument("--f3", action="store_true",
                        help="Enable the F3 rough-wall modification")
    parser.add_argument("--laminar", action="store_true",
                        help="Switch the turbulence model off")

    # Solver
    parser.add_argument("--delta-t", dest="delta_t", type=float, default=None,
                        help="Pseudo-time step")
    parser.add_argument("--n-steps", "-n", dest="n_steps", type=int, default=None,
                        help="Number of correct() steps")
    parser.add_argument("--print-freq", dest="print_freq", type=int, default=None,
                        help="Console print frequency")
    parser.add_argument("--gmres-tol", dest="gmres_tol", type=float, default=None,
                        help="Relative GMRES tolerance")

    # Output / runtime
    parser.add_argument("--output-dir", "-o", dest="output_dir", type=str, default=None,
                        help="Output directory")
    parser.add_argument("--case-name", dest="case_name", type=str, default=None,
                        help="Case name for output files")
    parser.add_argument("--device", type=str, default=None,
                        help="'auto', 'cpu' or GPU index")
    parser.add_argument("--log-level", default="INFO",
                        help="Logging level (default: INFO)")

    args = parser.parse_args()
    setup_logging(args.log_level)

    config = load_yaml(args.config_file) if args.config_file else SimulationConfig()
    config = apply_cli_overrides(config, args)

    select_device(config.device.device)
    logger.info(get_device_info())

    mesh, mean_flow = build_case(config)
    model = create_model("kOmegaSSTLowRe", mesh, mean_flow, config)

    n_steps = config.solver.n_steps
    print_freq = max(config.solver.print_freq, 1)
    log_fields(0, model)

    for step in range(1, n_steps + 1):
        report = model.correct()
        if report.skipped:
            logger.info("Turbulence is off, nothing to do")
            break
        if step % print_freq == 0 or step == n_steps:
            logger.info(f"{report.omega} | {report.k}")
            log_fields(step, model)

    if config.output.save_fields:
        out_dir = Path(config.output.directory)
        out_dir.mkdir(parents=True, exist_ok=True)
        out_file = out_dir / f"{config.output.case_name}.npz"
        np.savez(
            out_file,
            xc=mesh.xc, yc=mesh.yc, wall_distance=mesh.wall_distance,
            U=mean_flow.U, k=np.asarray(model.k()), omega=np.asarray(model.omega()),
            nut=np.asarray(model.nut()), epsilon=np.asarray(model.epsilon()),
        )
        save_yaml(config, out_dir / f"{config.output.case_name}.yaml")
        logger.success(f"Fields written to {out_file}")


if __name__ == "__main__":
    main()
