import numpy as np
import pytest

from constants import COLLISION_COOLDOWN
from errors import InvalidCount
from particle import Particle, ParticleConfig
from partition import Partition, pair_count, triangular_index


def snapshot(partition):
    return (
        partition.positions.tobytes(), partition.velocities.tobytes(),
        partition.radii.tobytes(), partition.cooldowns.tobytes(),
    )


@pytest.fixture
def crowded(rng):
    # Big molecules in a small box collide a lot.
    config = ParticleConfig(radius_range=(8.0, 12.0))
    return Partition.create(200.0, 0.0, 200.0, 40, config, rng)


# --- Triangular table ---

@pytest.mark.parametrize("n", [2, 3, 6, 11])
def test_triangular_index_follows_enumeration_order(n):
    expected = 0
    for i in range(n):
        for j in range(i + 1, n):
            assert triangular_index(i, j, n) == expected
            expected += 1
    assert expected == pair_count(n)


@pytest.mark.parametrize("i, j, n", [(1, 1, 3), (2, 1, 3), (0, 3, 3), (-1, 2, 3)])
def test_triangular_index_rejects_invalid_pairs(i, j, n):
    with pytest.raises(IndexError):
        triangular_index(i, j, n)


@pytest.mark.parametrize("n", [0, 1, 2, 5, 30])
def test_cooldown_table_size(rng, n):
    partition = Partition.create(400.0, 0.0, 300.0, n, ParticleConfig(), rng)
    assert len(partition) == n
    assert partition.cooldowns.shape == (n * (n - 1) // 2,)
    assert partition.cooldowns.dtype == np.uint8
    assert not partition.cooldowns.any()


def test_particles_keep_order_and_are_copies():
    particles = [Particle(10 * k + 20, 50, k, -k, 5) for k in range(4)]
    partition = Partition(particles, 0, 300)
    assert partition.particles == particles
    partition.particles[0].x = 999.0
    assert partition.positions[0, 0] == 20.0


# --- Collision pass ---

def test_tangent_pair_triggers_and_sets_cooldown():
    partition = Partition([Particle(100, 200, 1, 0, 8), Particle(116, 200, -1, 0, 8)], 0, 300)
    assert partition.resolve_collisions() == 1
    assert partition.cooldown(0, 1) == COLLISION_COOLDOWN
    # Head-on along x: velocities are exchanged.
    assert partition.velocities.tolist() == [[-1.0, 0.0], [1.0, 0.0]]


def test_cooldown_suppresses_retrigger_while_in_contact():
    partition = Partition([Particle(100, 200, 1, 0, 8), Particle(116, 200, -1, 0, 8)], 0, 300)
    partition.resolve_collisions()
    velocities = partition.velocities.copy()
    for _ in range(10):
        assert partition.resolve_collisions() == 0
    assert np.array_equal(partition.velocities, velocities)
    assert partition.cooldown(0, 1) == COLLISION_COOLDOWN


def test_cooldown_decays_once_contact_ends():
    partition = Partition([Particle(100, 200, 1, 0, 8), Particle(116, 200, -1, 0, 8)], 0, 300)
    partition.resolve_collisions()
    partition.positions[1, 0] = 250.0
    counters = []
    for _ in range(COLLISION_COOLDOWN + 2):
        partition.resolve_collisions()
        counters.append(partition.cooldown(0, 1))
    assert counters == [4, 3, 2, 1, 0, 0, 0]


def test_pair_can_collide_again_after_cooldown():
    partition = Partition([Particle(100, 200, 1, 0, 8), Particle(116, 200, -1, 0, 8)], 0, 300)
    partition.resolve_collisions()
    partition.positions[1, 0] = 250.0
    for _ in range(COLLISION_COOLDOWN):
        partition.resolve_collisions()
    partition.positions[1, 0] = 116.0
    assert partition.resolve_collisions() == 1


def test_custom_slack_and_cooldown():
    # 17^2 = 289 is outside the default slack but inside 40.
    partition = Partition([Particle(100, 200, 1, 0, 8), Particle(117, 200, -1, 0, 8)], 0, 300)
    assert partition.resolve_collisions() == 0
    assert partition.resolve_collisions(slack=40.0, cooldown=2) == 1
    assert partition.cooldown(0, 1) == 2


def test_pairs_are_processed_in_index_order():
    # Particle 1 touches both 0 and 2; the (0, 1) response happens first and
    # feeds into the (1, 2) response.
    particles = [
        Particle(100, 200, 2, 0, 8),
        Particle(116, 200, 0, 0, 8),
        Particle(132, 200, -2, 0, 8),
    ]
    partition = Partition(particles, 0, 300)
    assert partition.resolve_collisions() == 2

    a, b, c = (Particle(p.x, p.y, p.dx, p.dy, p.radius) for p in particles)
    a.adjust_velocity(b)
    b.adjust_velocity(c)
    expected = [[a.dx, a.dy], [b.dx, b.dy], [c.dx, c.dy]]
    assert np.allclose(partition.velocities, expected)
    assert partition.cooldown(0, 2) == 0


def test_single_and_empty_partitions_do_no_pair_work():
    assert Partition([], 0, 300).resolve_collisions() == 0
    assert Partition([Particle(50, 50, 1, 1, 5)], 0, 300).resolve_collisions() == 0


def test_cooldowns_stay_within_bounds(crowded):
    seen_trigger = False
    for _ in range(200):
        crowded.reflect(200.0)
        if crowded.resolve_collisions():
            seen_trigger = True
        crowded.advance()
        assert crowded.cooldowns.max() <= COLLISION_COOLDOWN
    assert seen_trigger


def test_particles_in_bounds_after_every_reflect(crowded):
    for _ in range(200):
        crowded.reflect(200.0)
        x, y = crowded.positions[:, 0], crowded.positions[:, 1]
        r = crowded.radii
        assert np.all(x >= r - 1e-9)
        assert np.all(x <= 200.0 - r + 1e-9)
        assert np.all(y >= r - 1e-9)
        assert np.all(y <= 200.0 - r + 1e-9)
        crowded.resolve_collisions()
        crowded.advance()


def test_reflect_matches_particle_method():
    particles = [Particle(3, 50, -2, 1, 5), Particle(98, 198, 1, 1, 5), Particle(50, 50, 1, 1, 5)]
    partition = Partition(particles, 0, 100)
    partition.reflect(200)
    for p in particles:
        p.reflect(0, 100, 200)
    assert partition.particles == particles


def test_advance():
    partition = Partition([Particle(10, 20, 1.5, -2, 3)], 0, 100)
    partition.advance()
    assert partition.positions.tolist() == [[11.5, 18.0]]


def test_kinetic_energy():
    partition = Partition([Particle(10, 20, 3, 4, 3), Particle(50, 20, 1, 0, 3)], 0, 100)
    assert partition.kinetic_energy() == pytest.approx(13.0)


# --- Resizing ---

def test_resize_to_same_count_is_noop(crowded):
    for _ in range(20):
        crowded.resolve_collisions()
        crowded.advance()
        crowded.reflect(200.0)
    before = snapshot(crowded)
    crowded.resize(len(crowded), ParticleConfig(), 200.0)
    assert snapshot(crowded) == before


def test_shrink_keeps_prefix(rng):
    partition = Partition.create(400.0, 0.0, 300.0, 10, ParticleConfig(), rng)
    original = partition.particles
    partition.resize(4, ParticleConfig(), 400.0, rng)
    assert partition.particles == original[:4]
    assert partition.cooldowns.shape == (6,)


def test_grow_then_shrink_restores_prefix(rng):
    partition = Partition.create(400.0, 0.0, 300.0, 10, ParticleConfig(), rng)
    original = partition.particles
    partition.resize(25, ParticleConfig(), 400.0, rng)
    assert partition.particles[:10] == original
    partition.resize(10, ParticleConfig(), 400.0, rng)
    assert partition.particles == original


def test_grow_spawns_inside_own_band(rng):
    partition = Partition.create(400.0, 300.0, 600.0, 5, ParticleConfig(), rng)
    partition.resize(100, ParticleConfig(radius_range=(2.0, 4.0)), 400.0, rng)
    assert len(partition) == 100
    for p in partition.particles[5:]:
        assert 300.0 + p.radius <= p.x <= 600.0 - p.radius
        assert 2.0 <= p.radius < 4.0


def test_resize_discards_cooldown_history():
    partition = Partition([Particle(100, 200, 1, 0, 8), Particle(116, 200, -1, 0, 8)], 0, 300)
    partition.resolve_collisions()
    partition.resize(3, ParticleConfig(), 400.0, np.random.default_rng(0))
    assert partition.cooldowns.shape == (3,)
    assert not partition.cooldowns.any()


def test_resize_to_zero_and_one(rng):
    partition = Partition.create(400.0, 0.0, 300.0, 5, ParticleConfig(), rng)
    partition.resize(1, ParticleConfig(), 400.0, rng)
    assert len(partition) == 1 and partition.cooldowns.size == 0
    partition.resize(0, ParticleConfig(), 400.0, rng)
    assert len(partition) == 0
    assert partition.positions.shape == (0, 2)


def test_resize_rejects_negative_count(rng):
    partition = Partition.create(400.0, 0.0, 300.0, 5, ParticleConfig(), rng)
    before = snapshot(partition)
    with pytest.raises(InvalidCount):
        partition.resize(-1, ParticleConfig(), 400.0, rng)
    assert snapshot(partition) == before


def test_sample_growth_leaves_partition_untouched(rng):
    partition = Partition.create(400.0, 0.0, 300.0, 5, ParticleConfig(), rng)
    partition.resolve_collisions()
    before = snapshot(partition)
    extra = partition.sample_growth(9, ParticleConfig(), 400.0, rng)
    assert len(extra) == 4
    assert partition.sample_growth(3, ParticleConfig(), 400.0, rng) == []
    assert snapshot(partition) == before
    partition.apply_resize(9, extra)
    assert partition.particles[5:] == extra
