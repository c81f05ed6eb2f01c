# quadtree.py

import math
import logging
from collections import namedtuple

logger = logging.getLogger("particle_web")

# A circular query region. Only ever built for a single query, never stored.
Circle = namedtuple('Circle', ['x', 'y', 'r'])


class Extent(namedtuple('Extent', ['min_x', 'min_y', 'max_x', 'max_y'])):
    """
    Axis-aligned rectangle given by its edges.

    Quadtree nodes test against edges rather than center +/- half-extent.
    Children are split at one shared midpoint, so the west child's max edge
    and the east child's min edge are the same float and no point can fall
    between them, whatever the domain size.
    """
    __slots__ = ()

    def contains(self, point, closed_x=False, closed_y=False):
        px, py = point[0], point[1]
        if px < self.min_x or py < self.min_y:
            return False
        in_x = px <= self.max_x if closed_x else px < self.max_x
        in_y = py <= self.max_y if closed_y else py < self.max_y
        return in_x and in_y

    def intersects(self, circle: Circle):
        return not (
            circle.x - circle.r > self.max_x or
            circle.x + circle.r < self.min_x or
            circle.y - circle.r > self.max_y or
            circle.y + circle.r < self.min_y
        )

    def quadrants(self):
        """Returns the (nw, ne, sw, se) child extents, split at the midpoint."""
        mid_x = (self.min_x + self.max_x) / 2
        mid_y = (self.min_y + self.max_y) / 2
        return (
            Extent(self.min_x, self.min_y, mid_x, mid_y),
            Extent(mid_x, self.min_y, self.max_x, mid_y),
            Extent(self.min_x, mid_y, mid_x, self.max_y),
            Extent(mid_x, mid_y, self.max_x, self.max_y),
        )

    @property
    def boundary(self):
        return Boundary((self.min_x + self.max_x) / 2, (self.min_y + self.max_y) / 2,
                        (self.max_x - self.min_x) / 2, (self.max_y - self.min_y) / 2)


class Boundary(namedtuple('Boundary', ['x', 'y', 'w', 'h'])):
    """
    Axis-aligned rectangle given by its center (x, y) and half-extents (w, h).

    Data Contract:
    - Containment is half-open, [x-w, x+w) x [y-h, y+h), so a point falls in
      exactly one quadrant at any subdivision depth.
    - Intersection is a broad-phase test against the query circle's bounding
      square. It may report false positives but never false negatives.
    """
    __slots__ = ()

    @property
    def extent(self):
        return Extent(self.x - self.w, self.y - self.h, self.x + self.w, self.y + self.h)

    def contains(self, point, closed_x=False, closed_y=False):
        return self.extent.contains(point, closed_x, closed_y)

    def intersects(self, circle: Circle):
        return self.extent.intersects(circle)

    def quadrants(self):
        """Returns the (nw, ne, sw, se) child boundaries."""
        return tuple(extent.boundary for extent in self.extent.quadrants())

    @classmethod
    def from_bounds(cls, width, height):
        """The boundary covering a (0, 0) - (width, height) domain."""
        return cls(width / 2, height / 2, width / 2, height / 2)


class QuadTree:
    """
    Point quadtree over particles, rebuilt from scratch every frame.

    A node keeps the first `capacity` particles it accepts. On the first
    overflow it subdivides into four quadrants and every later particle is
    delegated to the child whose boundary contains it. Nodes never merge.

    Each node tests against its exact edges (`extent`). Children split at
    the parent's midpoint, so sibling edges are shared and every point in
    the parent falls in exactly one child for any float domain size. Should
    no child accept a particle anyway, the node keeps it; queries already
    scan the particles held by internal nodes.

    The root is closed on its max edges (closed_x/closed_y) so a particle
    sitting exactly at x == width or y == height is not dropped. East and
    south children inherit the flag for their axis; every other edge stays
    half-open.

    `max_depth` caps subdivision: a node at that depth accepts particles
    beyond capacity instead of splitting again. Without it, many particles
    at one point would recurse until the half-extents underflow.

    Particles are referenced, not copied. Anything with a `position`
    sequence of (x, y) can be stored.
    """
    def __init__(self, boundary: Boundary, capacity: int = 4, max_depth: int = 16,
                 depth: int = 0, closed_x: bool = True, closed_y: bool = True,
                 extent: Extent = None):
        if capacity < 1:
            raise ValueError(f"QuadTree capacity must be >= 1, got {capacity}")
        self.boundary = boundary
        self.extent = boundary.extent if extent is None else extent
        self.capacity = capacity
        self.max_depth = max_depth
        self.depth = depth
        self.closed_x = closed_x
        self.closed_y = closed_y
        self.particles = []
        self.divided = False
        self.northwest = None
        self.northeast = None
        self.southwest = None
        self.southeast = None

    @classmethod
    def build(cls, particles, bounds, capacity: int = 4, max_depth: int = 16):
        """
        Builds a fresh tree covering a (width, height) domain and inserts
        every particle. Returns (tree, dropped) where dropped lists the
        particles no node accepted.
        """
        tree = cls(Boundary.from_bounds(bounds[0], bounds[1]), capacity, max_depth)
        dropped = [p for p in particles if not tree.insert(p)]
        return tree, dropped

    @property
    def children(self):
        if not self.divided:
            return ()
        return (self.northwest, self.northeast, self.southwest, self.southeast)

    def contains(self, point):
        return self.extent.contains(point, self.closed_x, self.closed_y)

    def subdivide(self):
        nw, ne, sw, se = self.extent.quadrants()
        depth = self.depth + 1
        self.northwest = QuadTree(nw.boundary, self.capacity, self.max_depth, depth, False, False, nw)
        self.northeast = QuadTree(ne.boundary, self.capacity, self.max_depth, depth, self.closed_x, False, ne)
        self.southwest = QuadTree(sw.boundary, self.capacity, self.max_depth, depth, False, self.closed_y, sw)
        self.southeast = QuadTree(se.boundary, self.capacity, self.max_depth, depth, self.closed_x, self.closed_y, se)
        self.divided = True

    def insert(self, particle):
        if not self.contains(particle.position):
            return False

        if len(self.particles) < self.capacity or (not self.divided and self.depth >= self.max_depth):
            self.particles.append(particle)
            return True

        if not self.divided:
            self.subdivide()

        if (self.northwest.insert(particle) or
                self.northeast.insert(particle) or
                self.southwest.insert(particle) or
                self.southeast.insert(particle)):
            return True

        self.particles.append(particle)
        return True

    def query(self, circle: Circle, found=None):
        """Appends every stored particle strictly closer than circle.r to found."""
        if found is None:
            found = []

        if not self.extent.intersects(circle):
            return found

        for particle in self.particles:
            dx = particle.position[0] - circle.x
            dy = particle.position[1] - circle.y
            if math.sqrt(dx * dx + dy * dy) < circle.r:
                found.append(particle)

        if self.divided:
            self.northwest.query(circle, found)
            self.northeast.query(circle, found)
            self.southwest.query(circle, found)
            self.southeast.query(circle, found)

        return found

    def iter_nodes(self):
        """Pre-order traversal of this node and all its descendants."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def node_count(self):
        return sum(1 for _ in self.iter_nodes())

    def max_node_depth(self):
        return max(node.depth for node in self.iter_nodes())

    def __len__(self):
        return sum(len(node.particles) for node in self.iter_nodes())

    def __repr__(self):
        return (f"QuadTree(boundary={self.boundary}, capacity={self.capacity}, "
                f"depth={self.depth}, particles={len(self.particles)}, divided={self.divided})")
