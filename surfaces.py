#!/usr/bin/env python3
"""
Parametric surfaces: functions mapping (u, v) in [0, 1] x [0, 1] to (x, y, z).

Surface functions take numpy arrays for u and v and return a tuple of three
arrays of the same shape, so a whole sample grid is evaluated in one call.
Factories (plane, torus, sphere, noise_sphere) return such a function.
"""

import logging

import numpy as np
from noise import snoise3

from primitives import grid_faces, mesh_bounds, mesh_from_faces, translate

logger = logging.getLogger(__name__)


def klein(u, v):
    """Figure-eight Klein bottle immersion (about 16 x 8 x 20 units)."""
    u = np.asarray(u, dtype=np.float64) * 2 * np.pi
    v = np.asarray(v, dtype=np.float64) * 2 * np.pi

    ring = 2 * (1 - np.cos(u) / 2)
    front = u < np.pi
    x = np.where(
        front,
        3 * np.cos(u) * (1 + np.sin(u)) + ring * np.cos(u) * np.cos(v),
        3 * np.cos(u) * (1 + np.sin(u)) + ring * np.cos(v + np.pi)
    )
    z = np.where(
        front,
        -8 * np.sin(u) - ring * np.sin(u) * np.cos(v),
        -8 * np.sin(u)
    )
    y = -ring * np.sin(v)
    return x, y, z


def mobius(u, v):
    """Mobius strip of radius 2 and band width 1."""
    u = np.asarray(u, dtype=np.float64) - 0.5
    t = np.asarray(v, dtype=np.float64) * 2 * np.pi
    a = 2
    x = np.cos(t) * (a + u * np.cos(t / 2))
    y = np.sin(t) * (a + u * np.cos(t / 2))
    z = u * np.sin(t / 2)
    return x, y, z


def plane(width=1.0, depth=1.0):
    def surface(u, v):
        u = np.asarray(u, dtype=np.float64)
        v = np.asarray(v, dtype=np.float64)
        return u * width, v * depth, np.zeros_like(u)
    return surface


def torus(major=2.0, minor=0.75):
    if minor <= 0 or major <= 0:
        raise ValueError(f"Torus radii must be positive, got major={major}, minor={minor}")

    def surface(u, v):
        phi = np.asarray(u, dtype=np.float64) * 2 * np.pi
        theta = np.asarray(v, dtype=np.float64) * 2 * np.pi
        ring = major + minor * np.cos(theta)
        return ring * np.cos(phi), ring * np.sin(phi), minor * np.sin(theta)
    return surface


def sphere(radius=1.0):
    if radius <= 0:
        raise ValueError(f"Sphere radius must be positive, got {radius}")

    def surface(u, v):
        phi = np.asarray(u, dtype=np.float64) * 2 * np.pi
        theta = np.asarray(v, dtype=np.float64) * np.pi
        return (radius * np.sin(theta) * np.cos(phi),
                radius * np.sin(theta) * np.sin(phi),
                -radius * np.cos(theta))
    return surface


def noise_sphere(radius=1.0, displacement=0.3, octaves=4, persistence=0.5,
                 frequency=1.5, offset=(0.0, 0.0, 0.0)):
    """
    Sphere whose radius is displaced by 3D simplex fbm.

    Args:
        radius: Base radius
        displacement: Maximum radial displacement as a fraction of radius
        octaves: Number of fbm octaves
        persistence: Amplitude falloff per octave
        frequency: Noise frequency on the unit sphere
        offset: (x, y, z) offset into noise space, used as the seed
    """
    base = sphere(1.0)
    fbm = np.vectorize(
        lambda x, y, z: snoise3(x, y, z, octaves=octaves, persistence=persistence),
        otypes=[np.float64]
    )

    def surface(u, v):
        x, y, z = base(u, v)
        n = fbm(x * frequency + offset[0], y * frequency + offset[1], z * frequency + offset[2])
        r = radius * (1 + displacement * n)
        return x * r, y * r, z * r
    return surface


SURFACES = {
    'klein': lambda: klein,
    'mobius': lambda: mobius,
    'plane': plane,
    'torus': torus,
    'sphere': sphere,
    'noise_sphere': noise_sphere,
}

# Surfaces the scene composer picks from; a flat plane makes a dull token
SCENE_SURFACES = ['klein', 'mobius', 'torus', 'sphere', 'noise_sphere']


def get_surface(name, **params):
    """Look up a surface by name and build it with ``params``."""
    try:
        factory = SURFACES[name]
    except KeyError:
        raise ValueError(f"Unknown surface: {name}. Choose from {', '.join(SURFACES)}")
    return factory(**params)


def parametric_mesh(func, slices=64, stacks=64, drop_degenerate=True):
    """
    Sample a parametric surface into a triangle mesh.

    Args:
        func: Surface function (u, v) -> (x, y, z) over numpy arrays
        slices: Number of divisions along u
        stacks: Number of divisions along v
        drop_degenerate: Remove zero-area triangles (poles, seams collapsing to a point)

    Returns:
        mesh.Mesh with at most 2 * slices * stacks triangles
    """
    if slices < 1 or stacks < 1:
        raise ValueError(f"slices and stacks must be >= 1, got {slices} x {stacks}")

    u = np.linspace(0, 1, slices + 1)
    v = np.linspace(0, 1, stacks + 1)
    uu, vv = np.meshgrid(u, v)
    x, y, z = func(uu, vv)

    vertices = np.column_stack([np.ravel(x), np.ravel(y), np.ravel(z)])
    if not np.all(np.isfinite(vertices)):
        raise ValueError("Surface function produced NaN or Inf values")

    faces = grid_faces(stacks + 1, slices + 1)

    if drop_degenerate:
        tri = vertices[faces]
        areas = np.linalg.norm(np.cross(tri[:, 1] - tri[:, 0], tri[:, 2] - tri[:, 0]), axis=1)
        extent = np.ptp(vertices, axis=0).max()
        keep = areas > (extent * extent) * 1e-12
        dropped = int(np.sum(~keep))
        if dropped:
            logger.debug(f"Dropped {dropped} degenerate triangles")
        faces = faces[keep]

    return mesh_from_faces(vertices, faces)


def fit_to_size(stl_mesh, size):
    """
    Uniformly scale a mesh so its largest extent equals ``size``.

    The result is centred on the origin in X/Y and rests on z = 0.
    """
    if size <= 0:
        raise ValueError(f"size must be positive, got {size}")

    low, high = mesh_bounds(stl_mesh)
    largest = float(np.max(high - low))
    if largest <= 0:
        raise ValueError("Cannot fit a mesh with zero extent")

    fitted = translate(stl_mesh, -(low + high) / 2)
    fitted.vectors *= size / largest
    low, _ = mesh_bounds(fitted)
    fitted.translate(np.array([0.0, 0.0, -low[2]]))
    fitted.update_normals()
    return fitted
