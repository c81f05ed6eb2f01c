"""
Tests for the per-frame orchestrator: connection enumeration, the
index/brute-force equivalence, and queued structural commands.
"""

import numpy as np
import pytest

from particle_system import ParticleSystem, ConnectionRecord, FrameResult
from tests.test_quadtree import FRACTIONAL_BOUNDS, center_lines

BOUNDS = (800, 600)


def pair_set(connections):
    return {(c.source.pid, c.target.pid) for c in connections}


@pytest.fixture
def empty_system(sim_config, rng):
    return ParticleSystem(0, sim_config, rng, BOUNDS)


@pytest.fixture
def system(sim_config, rng):
    return ParticleSystem(sim_config['particle_count'], sim_config, rng, BOUNDS)


class TestConnections:
    """Pair discovery through both the QuadTree and the all-pairs scan."""

    @pytest.mark.parametrize("use_quadtree", [True, False])
    def test_two_close_particles_connect(self, empty_system, use_quadtree):
        empty_system.spawn_particle(position=(0, 0))
        empty_system.spawn_particle(position=(50, 0))

        connections = empty_system.find_connections(use_quadtree)
        assert len(connections) == 1
        connection = connections[0]
        assert isinstance(connection, ConnectionRecord)
        assert connection.distance == pytest.approx(50)
        assert 0 < connection.alpha < 1
        assert connection.source.pid < connection.target.pid

    @pytest.mark.parametrize("use_quadtree", [True, False])
    def test_two_far_particles_do_not_connect(self, empty_system, use_quadtree):
        empty_system.spawn_particle(position=(0, 0))
        empty_system.spawn_particle(position=(200, 0))
        assert empty_system.find_connections(use_quadtree) == []

    def test_strength_is_linear_in_distance(self, empty_system):
        radius = empty_system.connection_distance
        empty_system.spawn_particle(position=(100, 100), hue=30.0)
        empty_system.spawn_particle(position=(100, 100))
        empty_system.spawn_particle(position=(100 + radius / 2, 100))

        by_target = {c.target.pid: c for c in empty_system.find_connections() if c.source.pid == 0}
        touching, halfway = by_target[1], by_target[2]
        assert touching.alpha == pytest.approx(1.0)
        assert touching.weight == pytest.approx(2.0)
        assert halfway.alpha == pytest.approx(0.5)
        assert halfway.weight == pytest.approx((2.0 + 0.1) / 2)
        assert touching.hue == pytest.approx((30.0 + empty_system.color_shift) % 360)

    def test_fewer_than_two_particles(self, empty_system):
        assert empty_system.find_connections_brute_force() == []
        empty_system.spawn_particle(position=(5, 5))
        assert empty_system.find_connections_indexed() == []
        assert empty_system.find_connections_brute_force() == []

    @pytest.mark.parametrize("bounds", [BOUNDS, FRACTIONAL_BOUNDS, (333.3, 917.77)])
    @pytest.mark.parametrize("radius", [1.0, 40.0, 120.0, 500.0])
    def test_indexed_matches_brute_force(self, sim_config, rng, bounds, radius):
        config = dict(sim_config, connection_distance=radius)
        system = ParticleSystem(400, config, rng, bounds)
        # Particles on quadrant lines and domain edges, each with a close
        # neighbour on the far side of the line
        xs, ys = center_lines(bounds, 3)
        for x in xs:
            for y in ys:
                system.spawn_particle(position=(x, y))
                system.spawn_particle(position=(min(x + 0.5, bounds[0]), y))
        # A dense cluster to force deep subdivision
        for _ in range(30):
            system.spawn_particle(position=(bounds[0] * 0.41, bounds[1] * 0.37))

        indexed = system.find_connections(use_quadtree=True)
        assert len(system.qtree) == system.particle_count
        brute = system.find_connections(use_quadtree=False)
        assert pair_set(indexed) == pair_set(brute)
        assert len(indexed) == len(brute)

    def test_pairs_are_unique(self, system):
        connections = system.find_connections()
        pairs = pair_set(connections)
        assert len(pairs) == len(connections)
        for a, b in pairs:
            assert a != b
            assert (b, a) not in pairs

    def test_equivalence_holds_while_running(self, system):
        system.set_pointer(400, 300, True)
        for frame in range(40):
            if frame == 20:
                system.toggle_repulsion()
            result = system.step()
            assert pair_set(result.connections) == pair_set(system.find_connections_brute_force())

    def test_equivalence_holds_on_fractional_domain(self, system):
        system.resize(*FRACTIONAL_BOUNDS)
        system.request_add(100)
        system.set_pointer(FRACTIONAL_BOUNDS[0] / 4, FRACTIONAL_BOUNDS[1] / 4, True)
        for _ in range(30):
            result = system.step()
            assert len(system.qtree) == result.particle_count
            assert pair_set(result.connections) == pair_set(system.find_connections_brute_force())


class TestStep:
    """Frame sequencing and structural commands."""

    def test_step_returns_frame_result(self, system, sim_config):
        result = system.step()
        assert isinstance(result, FrameResult)
        assert result.frame_index == 1
        assert result.particle_count == sim_config['particle_count']
        assert len(result.particles) == result.particle_count
        assert system.qtree is not None
        assert len(system.qtree) == result.particle_count

    def test_step_without_index(self, system):
        system.step()
        assert system.qtree is not None
        system.toggle_quadtree()
        assert not system.use_quadtree
        result = system.step()
        assert system.qtree is None
        assert pair_set(result.connections) == pair_set(system.find_connections_indexed())

    def test_color_shift_advances(self, system, sim_config):
        system.step()
        system.step()
        assert system.color_shift == pytest.approx(2 * sim_config['color_shift_step'])

    def test_add_is_applied_on_next_step(self, system, sim_config):
        start = system.particle_count
        system.request_add()
        assert system.particle_count == start
        assert system.pending_commands == 1
        system.step()
        assert system.particle_count == start + sim_config['batch_size']
        assert system.pending_commands == 0

    def test_remove_respects_floor(self, sim_config, rng):
        floor = sim_config['min_particles']
        system = ParticleSystem(floor + 15, sim_config, rng, BOUNDS)
        system.request_remove(10)
        system.step()
        assert system.particle_count == floor + 5
        # Landing exactly on the floor is refused, as is going below it
        system.request_remove(5)
        system.step()
        assert system.particle_count == floor + 5
        system.request_remove(20)
        system.step()
        assert system.particle_count == floor + 5
        system.request_remove(4)
        system.step()
        assert system.particle_count == floor + 1

    def test_remove_drops_newest(self, sim_config, rng):
        system = ParticleSystem(30, sim_config, rng, BOUNDS)
        system.request_remove(10)
        system.apply_pending_commands()
        assert [p.pid for p in system.particles] == list(range(20))

    def test_reset_restores_default_population(self, system, sim_config):
        system.request_add(25)
        system.step()
        highest = max(p.pid for p in system.particles)
        system.request_reset()
        system.step()
        assert system.particle_count == sim_config['particle_count']
        assert min(p.pid for p in system.particles) > highest

    def test_ids_stay_unique(self, system):
        system.request_remove(20)
        system.request_add(40)
        system.step()
        pids = [p.pid for p in system.particles]
        assert len(set(pids)) == len(pids)

    def test_resize_is_applied_before_motion(self, system):
        system.resize(300, 200)
        assert system.bounds == (800.0, 600.0)
        result = system.step()
        assert system.bounds == (300.0, 200.0)
        for state in result.particles:
            assert 0 <= state.x <= 300
            assert 0 <= state.y <= 200
        assert len(system.qtree) == result.particle_count

    def test_invalid_bounds(self, system):
        with pytest.raises(ValueError):
            system.resize(0, 100)
        with pytest.raises(ValueError):
            ParticleSystem(1, system.config, np.random.default_rng(0), (100, -1))

    def test_index_is_rebuilt_each_frame(self, system):
        system.step()
        first = system.qtree
        system.step()
        assert system.qtree is not first

    def test_spawn_particle_continues_ids(self, sim_config, rng):
        system = ParticleSystem(5, sim_config, rng, BOUNDS)
        assert [p.pid for p in system.particles] == list(range(5))
        particle = system.spawn_particle(position=(12, 34), velocity=(1, 0), hue=400.0)
        assert particle.pid == 5
        assert tuple(particle.position) == (12.0, 34.0)
        assert tuple(particle.velocity) == (1.0, 0.0)
        assert particle.hue == pytest.approx(40.0)
        assert system.particles[-1] is particle
