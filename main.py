# main.py
"""
Headless entry point for the molecule tank.

This script orchestrates a run without any display:
1. Loads configuration from `config.json`.
2. Initializes the logging system.
3. Builds the tank and its two populations.
4. Runs the frame loop: wall smoothing, physics step, scheduled resizes.
5. Logs a performance profile and shuts down.
"""
import logging
import sys
from utils import setup_logging, load_config
import cProfile
import pstats
import io
from typing import Any, Dict

from constants import (
    DEFAULT_WIDTH, DEFAULT_HEIGHT, DEFAULT_LEFT_COUNT, DEFAULT_RIGHT_COUNT
)
from particle import ParticleConfig
from simulation import SimulationSettings, Tank


def build_tank(config: Dict[str, Any]) -> Tank:
    """Creates a tank from the sections of a loaded configuration."""
    sim_params = config.get('simulation_parameters') or {}
    width = float(sim_params.get('width', DEFAULT_WIDTH))
    height = float(sim_params.get('height', DEFAULT_HEIGHT))
    return Tank(
        height=height,
        width=width,
        wall=float(sim_params.get('wall', width / 2)),
        left_count=int(sim_params.get('left_count', DEFAULT_LEFT_COUNT)),
        right_count=int(sim_params.get('right_count', DEFAULT_RIGHT_COUNT)),
        left_config=ParticleConfig.from_params(config.get('left_particles')),
        right_config=ParticleConfig.from_params(config.get('right_particles')),
        settings=SimulationSettings.from_params(sim_params),
        seed=sim_params.get('seed'),
    )


def run(tank: Tank, config: Dict[str, Any]) -> int:
    """
    Drives the tank the way a render loop would. Returns the number of steps run.
    """
    run_params = config.get('run_control') or {}
    log_throttle = run_params.get('log_throttle_steps', 100)
    max_steps = run_params.get('max_steps', 5000)
    wall_target = run_params.get('wall_target')
    resizes = {
        int(event['step']): event for event in run_params.get('resize_events', [])
    }
    left_config = ParticleConfig.from_params(config.get('left_particles'))
    right_config = ParticleConfig.from_params(config.get('right_particles'))

    if wall_target is not None:
        tank.set_wall_target(wall_target)

    total_collisions = 0
    step_num = 0
    while step_num < max_steps:
        tank.smooth_wall()
        total_collisions += tank.update()
        step_num += 1

        event = resizes.get(step_num)
        if event is not None:
            left_count, right_count = tank.particle_counts()
            tank.resize(
                event.get('left_count', left_count),
                event.get('right_count', right_count),
                left_config, right_config
            )

        # Hot loops must throttle logs
        if step_num % log_throttle == 0:
            left_count, right_count = tank.particle_counts()
            logging.info(
                f"Step {step_num}/{max_steps} | wall {tank.wall:.1f} | "
                f"particles {left_count}/{right_count} | "
                f"collisions so far {total_collisions}"
            )
            logging.debug(
                f"Step {step_num} | Kinetic energy left "
                f"{tank.left.kinetic_energy():.2f}, right {tank.right.kinetic_energy():.2f}"
            )

    logging.info(f"Reached max_steps ({max_steps}). Stopping simulation.")
    return step_num


def main(config_path: str = 'config.json'):
    """
    The main function to run the simulation.
    """
    # Logging is not set up yet, so we use a print for this one error.
    try:
        config = load_config(config_path)
    except Exception as e:
        print(f"FATAL: Could not load {config_path}. Error: {e}")
        return

    setup_logging(config)

    logging.info("--- Molecule Tank Simulation Starting ---")

    tank = build_tank(config)

    profiler = cProfile.Profile()
    profiler.enable()
    run(tank, config)
    profiler.disable()

    logging.info("--- Performance Profile ---")
    s = io.StringIO()
    stats = pstats.Stats(profiler, stream=s).sort_stats('cumtime')
    stats.print_stats(20)
    logging.info(f"\n{s.getvalue()}")

    logging.info("--- Molecule Tank Simulation Shutting Down ---")


if __name__ == "__main__":
    main(*sys.argv[1:2])
