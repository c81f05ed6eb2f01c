# particle.py

import math
import logging
from collections import namedtuple

import numpy as np

logger = logging.getLogger("particle_web")

# Cursor/touch input supplied by the input collaborator each frame.
PointerState = namedtuple('PointerState', ['x', 'y', 'active'])
PointerState.__new__.__defaults__ = (0.0, 0.0, False)

# What the renderer needs to draw one particle.
ParticleState = namedtuple('ParticleState', ['pid', 'x', 'y', 'size', 'hue'])


class Particle:
    """
    Represents a single particle in the swarm.

    Data Contract:
    - pid is assigned once at creation and never changes. It breaks pair
      symmetry when connections are enumerated.
    - position, velocity and acceleration are float arrays of shape (2,).
    - After every update: |velocity| <= max_speed, 0 <= hue < 360, and the
      position lies inside the closed domain [0, width] x [0, height].
    """
    def __init__(self, pid: int, position, velocity, hue: float, base_size: float,
                 pulse_speed: float, pulse_offset: float):
        self.pid = pid
        self.position = np.array(position, dtype=float)
        self.velocity = np.array(velocity, dtype=float)
        self.acceleration = np.zeros(2, dtype=float)
        self.hue = hue % 360.0
        self.base_size = base_size
        self.size = base_size
        self.pulse_speed = pulse_speed
        self.pulse_offset = pulse_offset

    @classmethod
    def spawn(cls, pid: int, rng: np.random.Generator, bounds, config: dict):
        """Creates a particle with randomized state inside the domain."""
        max_speed = config['max_speed']
        particle_size = config['particle_size']
        return cls(
            pid=pid,
            position=rng.random(2) * np.asarray(bounds, dtype=float),
            velocity=rng.uniform(-max_speed, max_speed, 2),
            hue=rng.uniform(0.0, 360.0),
            base_size=rng.uniform(particle_size * 0.5, particle_size * 1.5),
            pulse_speed=rng.uniform(config.get('pulse_speed_min', 0.02), config.get('pulse_speed_max', 0.06)),
            pulse_offset=rng.uniform(0.0, 2 * math.pi),
        )

    def _pointer_force(self, pointer: PointerState, config: dict, repulsion: bool):
        """
        Acceleration toward (or away from) the pointer. Zero when the pointer
        is closer than pointer_min_distance, so the 1/d strength stays bounded.
        """
        direction = np.array([pointer.x, pointer.y], dtype=float) - self.position
        distance = math.hypot(direction[0], direction[1])
        if distance <= config.get('pointer_min_distance', 5.0):
            return np.zeros(2, dtype=float)

        direction /= distance
        if repulsion:
            direction *= -1

        strength = 1.0 / (distance * config.get('pointer_falloff', 0.03))
        strength = min(max(strength, 0.0), config.get('pointer_max_strength', 0.8))
        return direction * strength

    def update(self, frame_index: int, pointer: PointerState, bounds, config: dict,
               rng: np.random.Generator, repulsion: bool = False):
        """
        Advances the particle by one frame.
        a = pointer force + jitter  (recomputed, never accumulated)
        v = limit(v + a, max_speed)
        p = p + v
        v = v * drag
        """
        if pointer is not None and pointer.active:
            self.acceleration = self._pointer_force(pointer, config, repulsion)
        else:
            self.acceleration = np.zeros(2, dtype=float)

        # Organic jitter, present every frame
        angle = rng.uniform(0.0, 2 * math.pi)
        jitter = config.get('jitter_magnitude', 0.01)
        self.acceleration += (math.cos(angle) * jitter, math.sin(angle) * jitter)

        max_speed = config['max_speed']
        self.velocity += self.acceleration
        speed = math.hypot(self.velocity[0], self.velocity[1])
        if speed > max_speed:
            self.velocity *= max_speed / speed
        self.position += self.velocity
        self.velocity *= config.get('drag', 0.99)

        self.wrap_edges(bounds)

        amplitude = self.base_size * config.get('size_pulse_amplitude', 0.3)
        self.size = self.base_size + math.sin(frame_index * self.pulse_speed + self.pulse_offset) * amplitude
        self.hue = (self.hue + config.get('hue_step', 0.1)) % 360.0

    def wrap_edges(self, bounds):
        """
        Snaps a particle that left the domain to the opposite edge. Any
        overshoot is discarded rather than carried across.
        """
        for axis in (0, 1):
            if self.position[axis] < 0:
                self.position[axis] = bounds[axis]
            elif self.position[axis] > bounds[axis]:
                self.position[axis] = 0.0

    @property
    def speed(self):
        return math.hypot(self.velocity[0], self.velocity[1])

    def render_state(self):
        return ParticleState(self.pid, float(self.position[0]), float(self.position[1]), self.size, self.hue)

    def __repr__(self):
        return f"Particle(pid={self.pid}, pos=({self.position[0]:.1f}, {self.position[1]:.1f}), hue={self.hue:.1f})"
