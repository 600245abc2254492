# particle.py
"""
Single molecules and the distributions they are sampled from.

This module defines the Particle value type, the ParticleConfig describing
how new particles are drawn, and the factory that fills a horizontal band of
the tank with them. The scalar physics helpers are jitted with Numba so the
partition kernels in partition.py can call exactly the same code as the
Particle methods.
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

import numpy as np
from numba import jit

from constants import (
    COLLISION_SLACK, DEFAULT_DX_RANGE, DEFAULT_DY_RANGE, DEFAULT_RADIUS_RANGE,
    RADIUS_MIN_OFFSET, RADIUS_MAX_OFFSET
)
from errors import InvalidConfig, InvalidCount, InvalidRegion

# --- Data Contracts ---
#
# create_particles(height, x_min, x_max, count, config, rng) -> List[Particle]:
#   - Inputs:
#     - height: float > 0, height of the tank.
#     - x_min, x_max: float, horizontal band the particles must fit in.
#     - count: int >= 0.
#     - config: ParticleConfig with validated ranges.
#     - rng: numpy Generator, the only source of randomness.
#   - Outputs: `count` particles, each fully inside the band.
#   - Side Effects: consumes the generator.
#   - Invariants: x_min + radius <= x <= x_max - radius and
#     radius <= y <= height - radius for every returned particle.

Range = Tuple[float, float]


@jit(nopython=True)
def touching(ax, ay, a_radius, bx, by, b_radius, slack):
    """Contact test with a squared-distance tolerance."""
    square_distance = (ax - bx) ** 2 + (ay - by) ** 2
    sum_radius = a_radius + b_radius
    return square_distance <= sum_radius * sum_radius + slack


@jit(nopython=True)
def reflect_axis(position, velocity, radius, low, high):
    """
    Clamps one coordinate into [low + radius, high - radius].

    Returns the corrected (position, velocity) pair; the velocity is negated
    only when an edge was crossed.
    """
    if position - radius < low:
        return low + radius, -velocity
    if position + radius > high:
        return high - radius, -velocity
    return position, velocity


@jit(nopython=True)
def collision_impulse(ax, ay, adx, ady, bx, by, bdx, bdy):
    """
    Velocity change transferred from b to a when the two collide.

    Both molecules have unit mass. `a` gains the returned (dvx, dvy) and `b`
    loses it. When the centres are vertically aligned the vertical component
    is taken from the centre offset directly.
    """
    delta_x = bx - ax
    if delta_x == 0.0:
        return 0.0, by - ay
    r = (by - ay) / delta_x
    delta_vx = ((bdx - adx) + (bdy - ady) * r) / (1.0 + r * r)
    return delta_vx, r * delta_vx


@dataclass
class Particle:
    """A circular molecule. `radius` must not change after creation."""
    x: float
    y: float
    dx: float
    dy: float
    radius: float

    def __post_init__(self):
        self.x = float(self.x)
        self.y = float(self.y)
        self.dx = float(self.dx)
        self.dy = float(self.dy)
        self.radius = float(self.radius)

    def is_touching(self, other: "Particle", slack: float = COLLISION_SLACK) -> bool:
        return bool(touching(
            self.x, self.y, self.radius, other.x, other.y, other.radius, slack
        ))

    def move(self):
        self.x += self.dx
        self.y += self.dy

    def reflect(self, left_bound: float, right_bound: float, height: float):
        """Bounces the particle off the band edges and the floor/ceiling."""
        self.x, self.dx = reflect_axis(self.x, self.dx, self.radius, left_bound, right_bound)
        self.y, self.dy = reflect_axis(self.y, self.dy, self.radius, 0.0, height)

    def adjust_velocity(self, other: "Particle"):
        """Applies the collision response to both particles in place."""
        delta_vx, delta_vy = collision_impulse(
            self.x, self.y, self.dx, self.dy,
            other.x, other.y, other.dx, other.dy
        )
        self.dx += delta_vx
        self.dy += delta_vy
        other.dx -= delta_vx
        other.dy -= delta_vy


def _check_range(name: str, value: Range) -> Range:
    low, high = float(value[0]), float(value[1])
    if not (np.isfinite(low) and np.isfinite(high)):
        msg = f"Configuration error: {name} has a non-finite bound ({low}, {high})."
        logging.error(msg)
        raise InvalidConfig(msg)
    if low > high:
        msg = f"Configuration error: {name} is inverted ({low} > {high})."
        logging.error(msg)
        raise InvalidConfig(msg)
    return low, high


@dataclass(frozen=True)
class ParticleConfig:
    """
    Uniform sampling ranges for new particles.

    Ranges are (low, high) pairs. A zero-width range is accepted; an inverted
    one, or a radius range reaching zero, raises InvalidConfig. The value is
    immutable: build a new one when the parameters change.
    """
    dx_range: Range = DEFAULT_DX_RANGE
    dy_range: Range = DEFAULT_DY_RANGE
    radius_range: Range = DEFAULT_RADIUS_RANGE

    def __post_init__(self):
        # frozen dataclass: normalise through object.__setattr__
        for name in ('dx_range', 'dy_range', 'radius_range'):
            object.__setattr__(self, name, _check_range(name, getattr(self, name)))
        if self.radius_range[0] <= 0:
            msg = (
                f"Configuration error: radius_range must be strictly positive, "
                f"got {self.radius_range}."
            )
            logging.error(msg)
            raise InvalidConfig(msg)

    @property
    def max_radius(self) -> float:
        return self.radius_range[1]

    @classmethod
    def default(cls) -> "ParticleConfig":
        return cls()

    @classmethod
    def from_controls(cls, speed: float, radius_average: float,
                      radius_variance: float) -> "ParticleConfig":
        """
        Builds a distribution from the three user-facing controls.

        Args:
            speed (float): Maximum absolute velocity on each axis.
            radius_average (float): Average radius before offsets.
            radius_variance (float): Spread of the radius, in percent of the average.
        """
        spread = radius_variance / 100.0
        min_radius = (1.0 - spread) * radius_average + RADIUS_MIN_OFFSET
        max_radius = (1.0 + spread) * radius_average + RADIUS_MAX_OFFSET
        return cls(
            dx_range=(-speed, speed),
            dy_range=(-speed, speed),
            radius_range=(min_radius, max_radius),
        )

    @classmethod
    def from_params(cls, params: Optional[Dict[str, Any]]) -> "ParticleConfig":
        """
        Reads a distribution from a config section.

        Explicit ranges win over the speed/radius controls; an empty or
        missing section yields the default distribution.
        """
        if not params:
            return cls.default()
        if 'speed' in params:
            return cls.from_controls(
                params['speed'],
                params.get('radius_average', 3.0),
                params.get('radius_variance', 0.0),
            )
        return cls(
            dx_range=tuple(params.get('dx_range', DEFAULT_DX_RANGE)),
            dy_range=tuple(params.get('dy_range', DEFAULT_DY_RANGE)),
            radius_range=tuple(params.get('radius_range', DEFAULT_RADIUS_RANGE)),
        )


def create_particles(height: float, x_min: float, x_max: float, count: int,
                     config: ParticleConfig,
                     rng: Optional[np.random.Generator] = None) -> List[Particle]:
    """
    Samples `count` particles inside the band [x_min, x_max] x [0, height].

    Every attribute is drawn independently and uniformly, in the order
    radius, x, y, dx, dy.
    """
    if count < 0:
        msg = f"Cannot create a negative number of particles ({count})."
        logging.error(msg)
        raise InvalidCount(msg)
    if count == 0:
        return []

    diameter = 2 * config.max_radius
    if x_max - x_min < diameter or height < diameter:
        msg = (
            f"Region [{x_min:.1f}, {x_max:.1f}] x [0, {height:.1f}] is too small "
            f"for particles of radius up to {config.max_radius:.1f}."
        )
        logging.error(msg)
        raise InvalidRegion(msg)

    if rng is None:
        rng = np.random.default_rng()

    particles = []
    for _ in range(count):
        radius = rng.uniform(*config.radius_range)
        x = rng.uniform(x_min + radius, x_max - radius)
        y = rng.uniform(radius, height - radius)
        dx = rng.uniform(*config.dx_range)
        dy = rng.uniform(*config.dy_range)
        particles.append(Particle(x, y, dx, dy, radius))

    logging.debug(
        f"Created {count} particles in band [{x_min:.1f}, {x_max:.1f}]."
    )
    return particles
