#!/usr/bin/env python3
"""
Mesh primitives and helpers shared by the scene generators.

Every generator returns a numpy-stl mesh.Mesh in millimetres with Z up.
"""

import numpy as np
from stl import mesh


def mesh_from_faces(vertices, faces):
    """
    Build a mesh.Mesh from an indexed vertex/face description.

    Args:
        vertices: Nx3 array of vertex positions
        faces: Mx3 integer array of vertex indices (counter-clockwise = outward)

    Returns:
        mesh.Mesh with facet normals calculated
    """
    vertices = np.asarray(vertices, dtype=np.float64)
    faces = np.asarray(faces, dtype=np.int64).reshape(-1, 3)

    data = np.zeros(len(faces), dtype=mesh.Mesh.dtype)
    data['vectors'] = vertices[faces]
    return mesh.Mesh(data)


def grid_faces(rows, cols):
    """
    Triangulate a rows x cols vertex grid, two triangles per cell.

    Vertex index is r * cols + c. With x growing along c and y along r the
    triangles face +z. Each cell yields (a, b, d) then (b, c, d) where a is the
    cell's corner, b its neighbour along c, d its neighbour along r and c the
    opposite corner.
    """
    r, c = np.meshgrid(np.arange(rows - 1), np.arange(cols - 1), indexing='ij')
    a = r * cols + c
    b = a + 1
    d = a + cols
    opposite = d + 1
    first = np.stack([a, b, d], axis=-1)
    second = np.stack([b, opposite, d], axis=-1)
    return np.stack([first, second], axis=2).reshape(-1, 3)


def generate_box(width=50, depth=50, height=50, position=(0, 0, 0)):
    """
    Generate a closed box.

    Args:
        width: Size along X in mm
        depth: Size along Y in mm
        height: Size along Z in mm
        position: (x, y, z) of the box centre

    Returns:
        mesh.Mesh object (12 triangles)
    """
    if width <= 0 or depth <= 0 or height <= 0:
        raise ValueError(f"Box dimensions must be positive, got {width} x {depth} x {height}")

    hx, hy, hz = width / 2, depth / 2, height / 2
    vertices = np.array([
        [-hx, -hy, -hz],
        [+hx, -hy, -hz],
        [+hx, +hy, -hz],
        [-hx, +hy, -hz],
        [-hx, -hy, +hz],
        [+hx, -hy, +hz],
        [+hx, +hy, +hz],
        [-hx, +hy, +hz],
    ]) + np.asarray(position, dtype=np.float64)

    faces = np.array([
        # Bottom (z = -hz)
        [0, 3, 1],
        [1, 3, 2],
        # Top (z = +hz)
        [4, 5, 7],
        [5, 6, 7],
        # Front (y = -hy)
        [0, 1, 4],
        [1, 5, 4],
        # Back (y = +hy)
        [2, 3, 6],
        [3, 7, 6],
        # Left (x = -hx)
        [0, 4, 3],
        [3, 4, 7],
        # Right (x = +hx)
        [1, 2, 5],
        [2, 6, 5],
    ])

    return mesh_from_faces(vertices, faces)


def generate_cube(size=50, position=(0, 0, 0)):
    """Cube of side ``size`` centred on ``position``."""
    return generate_box(size, size, size, position)


def generate_cylinder(radius=10, height=30, position=(0, 0, 0), segments=32):
    """
    Generate a closed cylinder standing along Z.

    Args:
        radius: Cylinder radius in mm
        height: Cylinder height in mm
        position: (x, y, z) position of cylinder centre
        segments: Number of sides

    Returns:
        mesh.Mesh object with 4 * segments triangles
    """
    if radius <= 0 or height <= 0:
        raise ValueError(f"Cylinder radius and height must be positive, got r={radius}, h={height}")
    if segments < 3:
        raise ValueError(f"Cylinder needs at least 3 segments, got {segments}")

    theta = np.linspace(0, 2 * np.pi, segments, endpoint=False)
    x = position[0] + radius * np.cos(theta)
    y = position[1] + radius * np.sin(theta)
    z_bottom = position[2] - height / 2
    z_top = position[2] + height / 2

    vertices = np.vstack([
        np.column_stack([x, y, np.full(segments, z_bottom)]),
        np.column_stack([x, y, np.full(segments, z_top)]),
        [[position[0], position[1], z_bottom]],
        [[position[0], position[1], z_top]],
    ])
    bottom_center = 2 * segments
    top_center = 2 * segments + 1

    i = np.arange(segments)
    nxt = (i + 1) % segments
    faces = np.vstack([
        # Sides
        np.column_stack([i, nxt, i + segments]),
        np.column_stack([nxt, nxt + segments, i + segments]),
        # Bottom cap
        np.column_stack([np.full(segments, bottom_center), nxt, i]),
        # Top cap
        np.column_stack([np.full(segments, top_center), i + segments, nxt + segments]),
    ])

    return mesh_from_faces(vertices, faces)


def translate(stl_mesh, offset):
    """Return a translated copy of ``stl_mesh``."""
    moved = mesh.Mesh(stl_mesh.data.copy())
    moved.translate(np.asarray(offset, dtype=np.float64))
    return moved


def merge_meshes(meshes):
    """Concatenate several meshes into one triangle soup."""
    meshes = list(meshes)
    if not meshes:
        raise ValueError("Cannot merge an empty list of meshes")
    return mesh.Mesh(np.concatenate([m.data for m in meshes]))


def mesh_bounds(stl_mesh):
    """(min_xyz, max_xyz) arrays of a mesh."""
    points = stl_mesh.vectors.reshape(-1, 3)
    return points.min(axis=0), points.max(axis=0)
