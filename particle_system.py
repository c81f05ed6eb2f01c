# particle_system.py

import math
import logging
from collections import namedtuple, deque

import numba
import numpy as np

from particle import Particle, PointerState
from quadtree import QuadTree, Circle

logger = logging.getLogger("particle_web")

# A transient link between two particles. source always has the lower pid.
ConnectionRecord = namedtuple('ConnectionRecord', ['source', 'target', 'distance', 'alpha', 'weight', 'hue'])

# Everything the external collaborators consume after one step.
FrameResult = namedtuple('FrameResult', ['frame_index', 'particles', 'connections', 'particle_count'])

# Stroke weight at distance 0 and at the connection radius.
MAX_STROKE_WEIGHT = 2.0
MIN_STROKE_WEIGHT = 0.1


# --- JIT-Compiled Pair Scan ---
# The all-pairs fallback works on a plain (n, 2) positions array so it can run
# in Numba's nopython mode. The distance formula matches QuadTree.query exactly,
# so both paths agree on pairs that sit right at the radius.

@numba.jit(nopython=True)
def _find_pairs_brute_force_jit(positions, radius):
    """
    Numba-accelerated O(n^2) scan. Returns (pairs, distances) where pairs[k]
    holds the two row indices (i < j) of a pair closer than radius.
    """
    n = positions.shape[0]

    # First pass counts so the output can be allocated exactly once.
    count = 0
    for i in range(n):
        for j in range(i + 1, n):
            dx = positions[j, 0] - positions[i, 0]
            dy = positions[j, 1] - positions[i, 1]
            if np.sqrt(dx * dx + dy * dy) < radius:
                count += 1

    pairs = np.empty((count, 2), dtype=np.int64)
    distances = np.empty(count, dtype=np.float64)
    k = 0
    for i in range(n):
        for j in range(i + 1, n):
            dx = positions[j, 0] - positions[i, 0]
            dy = positions[j, 1] - positions[i, 1]
            d = np.sqrt(dx * dx + dy * dy)
            if d < radius:
                pairs[k, 0] = i
                pairs[k, 1] = j
                distances[k] = d
                k += 1
    return pairs, distances


class ParticleSystem:
    """
    Owns the swarm and drives one frame at a time.

    Data Contract:
    - Inputs:
        - num_particles (int): The initial population.
        - config (dict): The 'simulation' section of the config file.
        - rng (np.random.Generator): The master seeded random number generator.
        - bounds (tuple): The (width, height) of the simulation area.
    - Outputs: step() returns a FrameResult for the renderer and overlay.
    - Side Effects: Mutates the particle list, but only inside step().
    - Invariants: External requests (resize, add, remove, reset) are queued
      and applied at the start of the next step, never mid-step. Particle
      ids are unique and strictly increasing in creation order. A remove
      request that would leave min_particles or fewer is ignored.
    """
    def __init__(self, num_particles: int, config: dict, rng: np.random.Generator, bounds: tuple):
        self.config = config
        self.rng = rng
        self.bounds = self._validate_bounds(bounds)
        self.connection_distance = config['connection_distance']
        self.capacity = config.get('quadtree_capacity', 4)
        self.max_depth = config.get('quadtree_max_depth', 16)
        self.min_particles = config.get('min_particles', 10)
        self.batch_size = config.get('batch_size', 10)

        self.frame_index = 0
        self.color_shift = 0.0
        self.pointer = PointerState()
        self.repulsion_mode = False
        self.use_quadtree = config.get('use_quadtree', True)
        self.qtree = None

        self._next_pid = 0
        self._pending = deque()

        self.particles = []
        self._populate(num_particles)

        logger.info(f"ParticleSystem created with {num_particles} particles in a {self.bounds[0]}x{self.bounds[1]} domain.")
        logger.info(
            f"Connection radius {self.connection_distance}, QuadTree capacity {self.capacity}, "
            f"max depth {self.max_depth}."
        )

    @staticmethod
    def _validate_bounds(bounds):
        width, height = float(bounds[0]), float(bounds[1])
        if width <= 0 or height <= 0:
            raise ValueError(f"Domain size must be positive, got {width}x{height}")
        return (width, height)

    def _populate(self, count: int):
        for _ in range(count):
            self.spawn_particle()

    def spawn_particle(self, position=None, velocity=None, hue=None):
        """
        Adds one particle immediately and returns it. Omitted state is
        randomized. Every population change goes through here; while the
        simulation is running, use request_add() so the change lands
        between frames.
        """
        particle = Particle.spawn(self._next_pid, self.rng, self.bounds, self.config)
        if position is not None:
            particle.position = np.array(position, dtype=float)
        if velocity is not None:
            particle.velocity = np.array(velocity, dtype=float)
        if hue is not None:
            particle.hue = hue % 360.0
        self._next_pid += 1
        self.particles.append(particle)
        return particle

    # --- External inputs ---

    def set_pointer(self, x: float, y: float, active: bool):
        self.pointer = PointerState(float(x), float(y), bool(active))

    def toggle_repulsion(self):
        self.repulsion_mode = not self.repulsion_mode
        logger.info(f"Pointer mode: {'repel' if self.repulsion_mode else 'attract'}")

    def toggle_quadtree(self):
        self.use_quadtree = not self.use_quadtree
        logger.info(f"Spatial index {'enabled' if self.use_quadtree else 'disabled'}")

    def resize(self, width: float, height: float):
        self._pending.append(('resize', self._validate_bounds((width, height))))

    def request_add(self, count: int = None):
        self._pending.append(('add', self.batch_size if count is None else count))

    def request_remove(self, count: int = None):
        self._pending.append(('remove', self.batch_size if count is None else count))

    def request_reset(self):
        self._pending.append(('reset', None))

    @property
    def pending_commands(self):
        return len(self._pending)

    def apply_pending_commands(self):
        """Drains the command queue. Called by step() before any motion."""
        while self._pending:
            command, arg = self._pending.popleft()
            if command == 'resize':
                self.bounds = arg
                logger.info(f"Domain resized to {arg[0]}x{arg[1]}")
            elif command == 'add':
                self._populate(arg)
                logger.info(f"Added {arg} particles. New count: {len(self.particles)}.")
            elif command == 'remove':
                if len(self.particles) - arg <= self.min_particles:
                    logger.warning(
                        f"Ignoring request to remove {arg} particles: count {len(self.particles)} "
                        f"would drop to or below the floor of {self.min_particles}."
                    )
                    continue
                del self.particles[len(self.particles) - arg:]
                logger.info(f"Removed {arg} particles. New count: {len(self.particles)}.")
            elif command == 'reset':
                self.particles = []
                self._populate(self.config['particle_count'])
                logger.info(f"Population reset to {len(self.particles)} particles.")

    # --- Per-frame work ---

    def step(self):
        """
        Runs one frame: apply queued requests, move every particle, rebuild
        the spatial index, then enumerate connections.
        """
        self.apply_pending_commands()
        self.frame_index += 1
        self.color_shift = (self.color_shift + self.config.get('color_shift_step', 0.2)) % 360.0

        for particle in self.particles:
            particle.update(self.frame_index, self.pointer, self.bounds, self.config, self.rng, self.repulsion_mode)

        connections = self.find_connections()

        return FrameResult(
            frame_index=self.frame_index,
            particles=[p.render_state() for p in self.particles],
            connections=connections,
            particle_count=len(self.particles),
        )

    def build_index(self):
        """Builds a fresh QuadTree over the current domain from current positions."""
        self.qtree, dropped = QuadTree.build(self.particles, self.bounds, self.capacity, self.max_depth)
        if dropped:
            logger.warning(f"{len(dropped)} particle(s) fell outside the QuadTree root and were skipped.")
        return self.qtree

    def find_connections(self, use_quadtree: bool = None):
        """Enumerates unique near pairs using the index or the all-pairs scan."""
        if use_quadtree is None:
            use_quadtree = self.use_quadtree
        if use_quadtree:
            return self.find_connections_indexed()
        return self.find_connections_brute_force()

    def find_connections_indexed(self):
        qtree = self.build_index()
        radius = self.connection_distance
        connections = []
        neighbors = []
        for particle in self.particles:
            x, y = particle.position[0], particle.position[1]
            neighbors.clear()
            qtree.query(Circle(x, y, radius), neighbors)
            for neighbor in neighbors:
                if neighbor.pid <= particle.pid:
                    continue
                dx = neighbor.position[0] - x
                dy = neighbor.position[1] - y
                distance = math.sqrt(dx * dx + dy * dy)
                if distance < radius:
                    connections.append(self._make_connection(particle, neighbor, distance))
        return connections

    def find_connections_brute_force(self):
        # No index belongs to a frame that ran without one
        self.qtree = None
        if len(self.particles) < 2:
            return []
        positions = np.array([p.position for p in self.particles], dtype=np.float64)
        pairs, distances = _find_pairs_brute_force_jit(positions, float(self.connection_distance))

        connections = []
        for (i, j), distance in zip(pairs, distances):
            first, second = self.particles[i], self.particles[j]
            if first.pid > second.pid:
                first, second = second, first
            connections.append(self._make_connection(first, second, float(distance)))
        return connections

    def _make_connection(self, source: Particle, target: Particle, distance: float):
        """
        Strength falls off linearly with distance: alpha goes 1 -> 0 and the
        stroke weight MAX -> MIN as distance goes 0 -> connection_distance.
        """
        t = distance / self.connection_distance
        alpha = 1.0 - t
        weight = MAX_STROKE_WEIGHT + (MIN_STROKE_WEIGHT - MAX_STROKE_WEIGHT) * t
        hue = (source.hue + self.color_shift) % 360.0
        return ConnectionRecord(source, target, distance, alpha, weight, hue)

    @property
    def particle_count(self):
        return len(self.particles)
