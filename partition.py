# partition.py
"""
One side of the tank.

A Partition stores its molecules in NumPy arrays, in insertion order, next to
a flattened upper-triangular table of per-pair cooldown counters. The
reflection and collision passes are Numba-jitted loops over those arrays and
reuse the scalar helpers from particle.py.
"""
import logging
import numpy as np
from typing import List, Optional, Sequence

from numba import jit

from constants import COLLISION_SLACK, COLLISION_COOLDOWN
from errors import InvalidCount
from particle import (
    Particle, ParticleConfig, collision_impulse, create_particles,
    reflect_axis, touching
)

# --- Data Contracts ---
#
# class Partition:
#   - __init__(self, particles: Sequence[Particle], band_min: float, band_max: float):
#     - Side Effects: Copies the particles into internal arrays and allocates a
#       zeroed cooldown table.
#     - Invariants:
#       - self.positions is float64 of shape (N, 2).
#       - self.velocities is float64 of shape (N, 2).
#       - self.radii is float64 of shape (N,).
#       - self.cooldowns is uint8 of shape (N * (N - 1) / 2,).
#
#   - resolve_collisions(self, slack, cooldown) -> int:
#     - Side Effects: Mutates velocities and cooldowns in place.
#     - Outputs: number of pairs whose velocities were adjusted.
#     - Invariants: 0 <= cooldowns[k] <= cooldown for every k.


def pair_count(n: int) -> int:
    """Number of unordered pairs in a set of n particles."""
    return n * (n - 1) // 2


def triangular_index(i: int, j: int, n: int) -> int:
    """
    Flat offset of the pair (i, j), i < j, in the cooldown table.

    Matches the enumeration order `for i in range(n): for j in range(i + 1, n)`.
    """
    if not 0 <= i < j < n:
        raise IndexError(f"Invalid pair ({i}, {j}) for {n} particles.")
    rows_before = i * n - i * (i + 1) // 2
    return rows_before + (j - i - 1)


@jit(nopython=True)
def _reflect_numba(positions, velocities, radii, band_min, band_max, height):
    """Numba-jitted boundary pass over every particle of a partition."""
    for i in range(positions.shape[0]):
        radius = radii[i]
        x, dx = reflect_axis(positions[i, 0], velocities[i, 0], radius, band_min, band_max)
        y, dy = reflect_axis(positions[i, 1], velocities[i, 1], radius, 0.0, height)
        positions[i, 0] = x
        positions[i, 1] = y
        velocities[i, 0] = dx
        velocities[i, 1] = dy


@jit(nopython=True)
def _resolve_collisions_numba(positions, velocities, radii, cooldowns, slack, cooldown):
    """
    Numba-jitted O(n^2) collision pass.

    Pairs are visited in ascending (i, j) order, so `k` walks the cooldown
    table front to back. Velocities are read and written through the arrays
    so both members of a pair are updated in place.
    """
    n = positions.shape[0]
    triggered = 0
    k = 0
    for i in range(n - 1):
        for j in range(i + 1, n):
            contact = touching(
                positions[i, 0], positions[i, 1], radii[i],
                positions[j, 0], positions[j, 1], radii[j],
                slack
            )
            if contact and cooldowns[k] == 0:
                delta_vx, delta_vy = collision_impulse(
                    positions[i, 0], positions[i, 1], velocities[i, 0], velocities[i, 1],
                    positions[j, 0], positions[j, 1], velocities[j, 0], velocities[j, 1]
                )
                velocities[i, 0] += delta_vx
                velocities[i, 1] += delta_vy
                velocities[j, 0] -= delta_vx
                velocities[j, 1] -= delta_vy
                cooldowns[k] = cooldown
                triggered += 1
            elif not contact and cooldowns[k] > 0:
                cooldowns[k] -= 1
            k += 1
    return triggered


class Partition:
    """
    The molecules on one side of the wall plus their pairwise cooldowns.
    """
    def __init__(self, particles: Sequence[Particle], band_min: float, band_max: float):
        """
        Args:
            particles (Sequence[Particle]): Initial molecules, in display order.
            band_min (float): Left edge of the horizontal band.
            band_max (float): Right edge of the horizontal band.
        """
        self.band_min = float(band_min)
        self.band_max = float(band_max)
        self._load(particles)

    @classmethod
    def create(cls, height: float, band_min: float, band_max: float, count: int,
               config: ParticleConfig,
               rng: Optional[np.random.Generator] = None) -> "Partition":
        """Fills a new partition with `count` sampled molecules."""
        particles = create_particles(height, band_min, band_max, count, config, rng)
        return cls(particles, band_min, band_max)

    def _load(self, particles: Sequence[Particle]):
        n = len(particles)
        self.positions = np.array(
            [[p.x, p.y] for p in particles], dtype=np.float64
        ).reshape(n, 2)
        self.velocities = np.array(
            [[p.dx, p.dy] for p in particles], dtype=np.float64
        ).reshape(n, 2)
        self.radii = np.array([p.radius for p in particles], dtype=np.float64)
        self._reset_cooldowns()

    def _reset_cooldowns(self):
        self.cooldowns = np.zeros(pair_count(len(self)), dtype=np.uint8)

    def __len__(self) -> int:
        return self.positions.shape[0]

    @property
    def particles(self) -> List[Particle]:
        """Copies of the molecules, in order. Mutating them has no effect."""
        return [
            Particle(x, y, dx, dy, radius)
            for (x, y), (dx, dy), radius in zip(
                self.positions.tolist(), self.velocities.tolist(), self.radii.tolist()
            )
        ]

    def cooldown(self, i: int, j: int) -> int:
        """Current cooldown counter of the pair (i, j), i < j."""
        return int(self.cooldowns[triangular_index(i, j, len(self))])

    def reflect(self, height: float):
        _reflect_numba(
            self.positions, self.velocities, self.radii,
            self.band_min, self.band_max, float(height)
        )

    def resolve_collisions(self, slack: float = COLLISION_SLACK,
                           cooldown: int = COLLISION_COOLDOWN) -> int:
        if len(self) < 2:
            return 0
        return _resolve_collisions_numba(
            self.positions, self.velocities, self.radii, self.cooldowns,
            float(slack), int(cooldown)
        )

    def advance(self):
        """Integrates one step: x += dx, y += dy."""
        self.positions += self.velocities

    def kinetic_energy(self) -> float:
        """Total kinetic energy with unit masses."""
        return 0.5 * float(np.sum(self.velocities ** 2))

    def sample_growth(self, new_count: int, config: ParticleConfig, height: float,
                      rng: Optional[np.random.Generator] = None) -> List[Particle]:
        """
        Validates a resize request and samples the molecules it would add.

        Nothing in the partition changes; an empty list is returned when the
        partition would not grow.
        """
        if new_count < 0:
            msg = f"Partition size must be non-negative, got {new_count}."
            logging.error(msg)
            raise InvalidCount(msg)
        if new_count <= len(self):
            return []
        return create_particles(
            height, self.band_min, self.band_max, new_count - len(self), config, rng
        )

    def apply_resize(self, new_count: int, extra: Sequence[Particle]):
        """
        Commits a resize: appends `extra` or drops molecules from the end.

        Any change of size discards the whole cooldown table.
        """
        current = len(self)
        if new_count == current:
            return

        if new_count > current:
            extra_partition = Partition(extra, self.band_min, self.band_max)
            self.positions = np.concatenate((self.positions, extra_partition.positions))
            self.velocities = np.concatenate((self.velocities, extra_partition.velocities))
            self.radii = np.concatenate((self.radii, extra_partition.radii))
        else:
            self.positions = self.positions[:new_count].copy()
            self.velocities = self.velocities[:new_count].copy()
            self.radii = self.radii[:new_count].copy()

        self._reset_cooldowns()
        logging.info(
            f"Partition [{self.band_min:.1f}, {self.band_max:.1f}] resized "
            f"from {current} to {new_count} particles."
        )

    def resize(self, new_count: int, config: ParticleConfig, height: float,
               rng: Optional[np.random.Generator] = None):
        """
        Grows or shrinks the population while keeping existing molecules.

        New molecules are sampled inside this partition's band and appended;
        shrinking drops molecules from the end.
        """
        self.apply_resize(new_count, self.sample_growth(new_count, config, height, rng))
