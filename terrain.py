#!/usr/bin/env python3
"""
Procedural terrain from fractal Brownian motion (fbm) noise.

A HeightField maps a footprint position (x, y) in mm to a height using layered
simplex or Perlin noise from the `noise` library. generate_terrain() turns a
field into a closed, printable solid: the heightmap surface on top, a flat
bottom resting on z = 0 and four side walls joining them.

Noise types:
  simplex  - fbm over simplex noise (default, smooth rolling hills)
  perlin   - fbm over Perlin noise
  billow   - abs of Perlin fbm, rounded cloud-like mounds
  ridged   - inverted abs of Perlin fbm, sharp ridges
"""

import logging
import math

import numpy as np
from noise import pnoise2, snoise2

from primitives import grid_faces, mesh_from_faces

logger = logging.getLogger(__name__)

NOISE_SIMPLEX = 'simplex'
NOISE_PERLIN = 'perlin'
NOISE_BILLOW = 'billow'
NOISE_RIDGED = 'ridged'

NOISE_TYPES = [NOISE_SIMPLEX, NOISE_PERLIN, NOISE_BILLOW, NOISE_RIDGED]

# Perlin noise in the noise library tiles with this period
PERLIN_REPEAT = 1024


class HeightField:
    """Seeded fbm height function over a rectangular footprint."""

    def __init__(self, noise_type=NOISE_SIMPLEX, scale=0.01, octaves=5, persistence=0.5,
                 lacunarity=2.0, amplitude=40.0, offset=(0.0, 0.0), base=0, island=False,
                 extent=(200.0, 200.0)):
        if noise_type not in NOISE_TYPES:
            raise ValueError(f"Unknown noise type: {noise_type}")
        if octaves < 1:
            raise ValueError(f"octaves must be >= 1, got {octaves}")
        if scale <= 0:
            raise ValueError(f"scale must be positive, got {scale}")
        if amplitude < 0:
            raise ValueError(f"amplitude must be >= 0, got {amplitude}")

        self.noise_type = noise_type
        self.scale = scale
        self.octaves = int(octaves)
        self.persistence = persistence
        self.lacunarity = lacunarity
        self.amplitude = amplitude
        self.offset = (float(offset[0]), float(offset[1]))
        self.base = int(base)
        self.island = island
        self.extent = (float(extent[0]), float(extent[1]))

    @classmethod
    def from_random(cls, rng, extent=(200.0, 200.0), amplitude_range=(20.0, 60.0)):
        """
        Draw every field parameter from an FxRandom.

        The draw order is part of the output: changing it changes every
        terrain generated from an existing hash.
        """
        noise_type = rng.choice(NOISE_TYPES)
        octaves = rng.randint(3, 7)
        persistence = rng.uniform(0.35, 0.65)
        lacunarity = rng.uniform(1.8, 2.4)
        # Frequency per mm: 1 to 4 noise periods across the footprint
        periods = rng.uniform(1.0, 4.0)
        scale = periods / max(extent)
        amplitude = rng.uniform(*amplitude_range)
        offset = (rng.uniform(0, 256), rng.uniform(0, 256))
        base = rng.derive_seed(bits=8)
        island = rng.chance(0.3)

        return cls(
            noise_type=noise_type,
            scale=scale,
            octaves=octaves,
            persistence=persistence,
            lacunarity=lacunarity,
            amplitude=amplitude,
            offset=offset,
            base=base,
            island=island,
            extent=extent
        )

    def noise(self, x, y):
        """fbm noise at footprint position, returns value in [-1, 1]."""
        sx = x * self.scale + self.offset[0]
        sy = y * self.scale + self.offset[1]

        if self.noise_type == NOISE_SIMPLEX:
            return snoise2(sx, sy, octaves=self.octaves, persistence=self.persistence,
                           lacunarity=self.lacunarity)

        value = pnoise2(sx, sy, octaves=self.octaves, persistence=self.persistence,
                        lacunarity=self.lacunarity, repeatx=PERLIN_REPEAT,
                        repeaty=PERLIN_REPEAT, base=self.base)

        if self.noise_type == NOISE_BILLOW:
            return abs(value) * 2 - 1
        elif self.noise_type == NOISE_RIDGED:
            return (1 - abs(value)) * 2 - 1
        return value

    def falloff(self, x, y):
        """Radial fade used by island terrains: 1 at the centre, 0 at the edge."""
        if not self.island:
            return 1.0
        nx = x / (self.extent[0] / 2)
        ny = y / (self.extent[1] / 2)
        d = min(1.0, math.sqrt(nx * nx + ny * ny))
        # smoothstep from the edge inwards
        t = 1.0 - d
        return t * t * (3 - 2 * t)

    def height(self, x, y):
        """Height in mm at footprint position, in [0, amplitude]."""
        h = (self.noise(x, y) + 1) * 0.5 * self.amplitude
        h = min(max(h, 0.0), self.amplitude)
        return h * self.falloff(x, y)

    def sample_grid(self, xs, ys):
        """Heights for every (x, y) pair; result has shape (len(ys), len(xs))."""
        heights = np.empty((len(ys), len(xs)))
        for j, y in enumerate(ys):
            for i, x in enumerate(xs):
                heights[j, i] = self.height(float(x), float(y))
        return heights

    def describe(self):
        return {
            'noise_type': self.noise_type,
            'scale': round(self.scale, 6),
            'octaves': self.octaves,
            'persistence': round(self.persistence, 4),
            'lacunarity': round(self.lacunarity, 4),
            'amplitude': round(self.amplitude, 3),
            'island': self.island
        }


def _border_loop(rows, cols):
    """
    Indices of the outer ring of a rows x cols grid, counter-clockwise seen from +z.

    Grid index is r * cols + c with x growing along c and y along r.
    """
    loop = [c for c in range(cols - 1)]                                  # front, +x
    loop += [r * cols + (cols - 1) for r in range(rows - 1)]             # right, +y
    loop += [(rows - 1) * cols + c for c in range(cols - 1, 0, -1)]      # back, -x
    loop += [r * cols for r in range(rows - 1, 0, -1)]                   # left, -y
    return np.array(loop)


def generate_terrain(field, width=200.0, depth=200.0, segments=96, base_thickness=4.0):
    """
    Build a closed terrain solid from a height field.

    Args:
        field: HeightField providing heights in mm
        width: Footprint size along X in mm
        depth: Footprint size along Y in mm
        segments: Grid cells along each side (int, or (sx, sy) tuple)
        base_thickness: Solid plinth under the lowest terrain point in mm

    Returns:
        mesh.Mesh centred on the origin in X/Y with its bottom at z = 0.
        Triangle count is 4*sx*sy + 4*(sx + sy).
    """
    if isinstance(segments, (tuple, list)):
        seg_x, seg_y = int(segments[0]), int(segments[1])
    else:
        seg_x = seg_y = int(segments)

    if seg_x < 1 or seg_y < 1:
        raise ValueError(f"segments must be >= 1, got {segments}")
    if width <= 0 or depth <= 0:
        raise ValueError(f"Terrain size must be positive, got {width} x {depth}")
    if base_thickness < 0:
        raise ValueError(f"base_thickness must be >= 0, got {base_thickness}")

    cols, rows = seg_x + 1, seg_y + 1
    xs = np.linspace(-width / 2, width / 2, cols)
    ys = np.linspace(-depth / 2, depth / 2, rows)

    logger.info(f"Sampling {cols}x{rows} terrain grid ({field.noise_type}, {field.octaves} octaves)")
    heights = field.sample_grid(xs, ys)

    gx, gy = np.meshgrid(xs, ys)
    top = np.column_stack([gx.ravel(), gy.ravel(), (heights + base_thickness).ravel()])
    bottom = np.column_stack([gx.ravel(), gy.ravel(), np.zeros(rows * cols)])
    vertices = np.vstack([top, bottom])
    n = rows * cols

    top_faces = grid_faces(rows, cols)
    bottom_faces = top_faces[:, ::-1] + n

    # Side walls: one quad per border edge, outward because the loop is CCW
    loop = _border_loop(rows, cols)
    t1 = loop
    t2 = np.roll(loop, -1)
    b1 = t1 + n
    b2 = t2 + n
    wall_faces = np.concatenate([
        np.column_stack([b1, b2, t2]),
        np.column_stack([b1, t2, t1])
    ])

    faces = np.vstack([top_faces, bottom_faces, wall_faces])
    terrain = mesh_from_faces(vertices, faces)

    if not np.all(np.isfinite(terrain.vectors)):
        raise ValueError("Invalid terrain output - contains NaN or Inf values")

    logger.info(f"Terrain mesh has {len(terrain.vectors)} triangles")
    return terrain
