# simulation.py
"""
Handles the tank: two partitions separated by a movable wall.

This module defines the Tank class, which advances both partitions by one
step per call, smooths the wall toward its target and resizes or rebuilds
the populations on request. The two sides never interact: each partition
runs its own reflection and collision passes.
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

import numpy as np

from constants import COLLISION_SLACK, COLLISION_COOLDOWN, WALL_SMOOTHING
from errors import InvalidConfig
from particle import ParticleConfig
from partition import Partition

# --- Data Contracts ---
#
# class Tank:
#   - __init__(self, height, width, wall, left_count, right_count,
#              left_config, right_config, settings=None, seed=None):
#     - Side Effects: Samples both populations from a generator seeded by `seed`.
#     - Invariants: 0 <= wall <= width. The left band is [0, wall] and the
#       right band is [wall, width].
#
#   - update(self) -> int:
#     - Side Effects: reflect -> collide -> integrate, on both partitions.
#     - Outputs: number of collisions triggered this step.
#
#   - smooth_wall(self) -> None:
#     - Side Effects: wall = (1 - s) * wall + s * wall_target.


@dataclass(frozen=True)
class SimulationSettings:
    """Tunable constants of the collision and wall logic."""
    collision_slack: float = COLLISION_SLACK
    collision_cooldown: int = COLLISION_COOLDOWN
    wall_smoothing: float = WALL_SMOOTHING

    def __post_init__(self):
        # Cooldowns live in a uint8 table.
        if not 0 <= self.collision_cooldown <= 255:
            msg = f"collision_cooldown must be in [0, 255], got {self.collision_cooldown}."
            logging.critical(msg)
            raise InvalidConfig(msg)
        if not 0.0 <= self.wall_smoothing <= 1.0:
            msg = f"wall_smoothing must be in [0, 1], got {self.wall_smoothing}."
            logging.critical(msg)
            raise InvalidConfig(msg)

    @classmethod
    def from_params(cls, params: Dict[str, Any]) -> "SimulationSettings":
        return cls(
            collision_slack=float(params.get('collision_slack', COLLISION_SLACK)),
            collision_cooldown=int(params.get('collision_cooldown', COLLISION_COOLDOWN)),
            wall_smoothing=float(params.get('wall_smoothing', WALL_SMOOTHING)),
        )


class Tank:
    """
    The container: shared height and width, the wall, and one partition per side.
    """
    def __init__(self, height: float, width: float, wall: float,
                 left_count: int, right_count: int,
                 left_config: ParticleConfig, right_config: ParticleConfig,
                 settings: Optional[SimulationSettings] = None,
                 seed: Optional[int] = None,
                 rng: Optional[np.random.Generator] = None):
        """
        Builds the tank and samples both populations.

        Args:
            height (float): Height of the container.
            width (float): Width of the container.
            wall (float): Initial x-coordinate of the wall.
            left_count (int): Number of molecules left of the wall.
            right_count (int): Number of molecules right of the wall.
            left_config (ParticleConfig): Distribution for the left side.
            right_config (ParticleConfig): Distribution for the right side.
            settings (SimulationSettings): Collision and wall constants.
            seed (int): Seed for the generator, ignored when `rng` is given.
            rng (np.random.Generator): Shared generator to sample from.
        """
        self._check_wall(wall, width)
        self.rng = rng if rng is not None else np.random.default_rng(seed)
        left = Partition.create(height, 0.0, wall, left_count, left_config, self.rng)
        right = Partition.create(height, wall, width, right_count, right_config, self.rng)
        self._setup(height, width, wall, left, right, settings)

        logging.info(
            f"Tank initialized ({width:.0f}x{height:.0f}, wall at {wall:.1f}) with "
            f"{left_count} left and {right_count} right particles."
        )

    @classmethod
    def from_partitions(cls, height: float, width: float, wall: float,
                        left: Partition, right: Partition,
                        settings: Optional[SimulationSettings] = None,
                        rng: Optional[np.random.Generator] = None) -> "Tank":
        """Wraps already-populated partitions without sampling anything."""
        tank = cls.__new__(cls)
        tank.rng = rng if rng is not None else np.random.default_rng()
        tank._setup(height, width, wall, left, right, settings)
        return tank

    @staticmethod
    def _check_wall(wall, width):
        if not 0.0 <= wall <= width:
            msg = f"Wall position {wall} is outside the tank [0, {width}]."
            logging.critical(msg)
            raise InvalidConfig(msg)

    def _setup(self, height, width, wall, left, right, settings):
        self._check_wall(wall, width)
        self.height = float(height)
        self.width = float(width)
        self.wall = float(wall)
        self.wall_target = float(wall)
        self.left = left
        self.right = right
        self.settings = settings if settings is not None else SimulationSettings()
        self._sync_bands()

    def _sync_bands(self):
        self.left.band_min, self.left.band_max = 0.0, self.wall
        self.right.band_min, self.right.band_max = self.wall, self.width

    def update(self) -> int:
        """
        Executes one time step of the simulation.
        """
        self._sync_bands()

        # 1. Bounce off the container edges and the wall
        self.left.reflect(self.height)
        self.right.reflect(self.height)

        # 2. Same-side collisions only
        slack = self.settings.collision_slack
        cooldown = self.settings.collision_cooldown
        triggered = self.left.resolve_collisions(slack, cooldown)
        triggered += self.right.resolve_collisions(slack, cooldown)

        # 3. Integrate positions
        self.left.advance()
        self.right.advance()
        return triggered

    def set_wall_target(self, target: float):
        """Sets where the wall should drift to, clamped into the tank."""
        self.wall_target = min(max(float(target), 0.0), self.width)

    def smooth_wall(self):
        """Moves the wall one filter step toward its target."""
        s = self.settings.wall_smoothing
        self.wall = (1.0 - s) * self.wall + s * self.wall_target
        self._sync_bands()

    def set_dimensions(self, width: float, height: float):
        """Follows a host window resize, keeping the wall inside the tank."""
        self.width = float(width)
        self.height = float(height)
        self.wall = min(max(self.wall, 0.0), self.width)
        self.wall_target = min(max(self.wall_target, 0.0), self.width)
        self._sync_bands()
        logging.info(f"Tank resized to {self.width:.0f}x{self.height:.0f}.")

    def resize(self, left_count: int, right_count: int,
               left_config: ParticleConfig, right_config: ParticleConfig):
        """
        Changes both populations in place, keeping existing molecules.

        Both requests are validated and sampled before either side changes,
        so a rejected request leaves the tank untouched.
        """
        self._sync_bands()
        left_extra = self.left.sample_growth(left_count, left_config, self.height, self.rng)
        right_extra = self.right.sample_growth(right_count, right_config, self.height, self.rng)
        self.left.apply_resize(left_count, left_extra)
        self.right.apply_resize(right_count, right_extra)

    def reinitialize(self, left_count: int, right_count: int,
                     left_config: ParticleConfig, right_config: ParticleConfig) -> "Tank":
        """
        Returns a fresh tank with the same geometry, wall target, settings and
        generator.
        """
        logging.info("Reinitializing tank.")
        fresh = Tank(
            self.height, self.width, self.wall, left_count, right_count,
            left_config, right_config, settings=self.settings, rng=self.rng
        )
        fresh.wall_target = self.wall_target
        return fresh

    def particle_counts(self) -> Tuple[int, int]:
        return len(self.left), len(self.right)
