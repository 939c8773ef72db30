#!/usr/bin/env python3
"""
STL export for generated scenes.

Files are named after the token hash (<fxhash>.stl) and written through
numpy-stl in binary (default) or ASCII mode. Binary headers are replaced with a
fixed one so a given hash always produces the same bytes.

Also provides size estimation and feasibility checks before exporting, mesh
simplification (pyfqmr) for oversized scenes and a trimesh based mesh report.
"""

import io
import logging
import math
import os

import numpy as np
import pyfqmr
import trimesh
from stl import Mode, mesh

from fxhash import validate_hash

logger = logging.getLogger(__name__)

BINARY_HEADER_SIZE = 80
BINARY_COUNT_SIZE = 4
BINARY_TRIANGLE_SIZE = 50  # 12 float32 + uint16 attribute

# ASCII facets are roughly 7 lines of text; measured on typical output
ASCII_BYTES_PER_TRIANGLE = 260


def export_filename(fxhash):
    """File name for a token's export: ``<fxhash>.stl``."""
    return f"{validate_hash(fxhash)}.stl"


def _binary_header(name):
    header = f"fxsculpt {name}".encode('ascii', 'replace')[:BINARY_HEADER_SIZE]
    return header.ljust(BINARY_HEADER_SIZE, b' ')


def stl_bytes(stl_mesh, name='fxsculpt', ascii=False):
    """
    Serialize a mesh to STL.

    Args:
        stl_mesh: numpy-stl mesh object
        name: Solid name (ASCII) / header text (binary)
        ascii: If True, write ASCII STL instead of binary

    Returns:
        bytes of the STL file
    """
    buffer = io.BytesIO()
    stl_mesh.save(name, fh=buffer, mode=Mode.ASCII if ascii else Mode.BINARY)
    data = buffer.getvalue()

    if not ascii:
        # numpy-stl stamps the current time into the header
        data = _binary_header(name) + data[BINARY_HEADER_SIZE:]
    return data


def save_stl(stl_mesh, path, name=None, ascii=False):
    """
    Write a mesh to ``path``.

    Returns:
        Number of bytes written
    """
    if name is None:
        name = os.path.splitext(os.path.basename(path))[0]
    data = stl_bytes(stl_mesh, name=name, ascii=ascii)
    with open(path, 'wb') as f:
        f.write(data)
    logger.info(f"Wrote {len(stl_mesh.vectors)} triangles to {path} ({len(data) / 1024:.1f} KB)")
    return len(data)


def estimate_file_size(triangles, ascii=False):
    """Estimated STL size in bytes; exact for binary output."""
    if ascii:
        return 64 + triangles * ASCII_BYTES_PER_TRIANGLE
    return BINARY_HEADER_SIZE + BINARY_COUNT_SIZE + triangles * BINARY_TRIANGLE_SIZE


def check_export_feasibility(triangles, max_triangles=20_000_000, max_file_size_mb=500,
                             ascii=False):
    """
    Check if an export is feasible with given constraints.

    Args:
        triangles: Number of triangles in the scene mesh
        max_triangles: Maximum allowed output triangles (default: 20 million)
        max_file_size_mb: Maximum allowed output file size in MB (default: 500MB)
        ascii: Whether the export will be ASCII

    Returns:
        dict with keys:
            - feasible: Boolean indicating if the export is feasible
            - reason: String explaining why not feasible (if applicable)
            - estimates: Dict with triangles and file size
            - suggestions: List of suggestions to make the export feasible
    """
    file_size_mb = estimate_file_size(triangles, ascii=ascii) / (1024 * 1024)
    estimates = {
        'triangles': triangles,
        'file_size_mb': round(file_size_mb, 2),
        'format': 'ascii' if ascii else 'binary'
    }

    feasible = True
    reason = None
    suggestions = []

    if triangles > max_triangles:
        feasible = False
        reason = f"Scene has {triangles:,} triangles, exceeds maximum ({max_triangles:,} triangles)"
        ratio = max_triangles / triangles
        suggestions.append(f"Simplify to at most {ratio:.2f} of the original triangles")
        # Grid triangle counts scale with the square of the segment count
        suggestions.append(f"OR reduce segments by a factor of {1 / math.sqrt(ratio):.2f}")

    if file_size_mb > max_file_size_mb:
        if not feasible:
            suggestions.append(f"Output file size will be ~{file_size_mb:.0f}MB")
        else:
            feasible = False
            reason = f"Estimated file size ({file_size_mb:.0f}MB) exceeds maximum ({max_file_size_mb}MB)"
            if ascii:
                suggestions.append("Export as binary STL instead of ASCII")
            suggestions.append(f"Simplify to at most {max_file_size_mb / file_size_mb:.2f} of the original triangles")

    return {
        'feasible': feasible,
        'reason': reason,
        'estimates': estimates,
        'suggestions': suggestions
    }


def _indexed(stl_mesh):
    """Deduplicated (vertices, faces) of a triangle soup."""
    points = stl_mesh.vectors.reshape(-1, 3).astype(np.float64)
    # Round to avoid floating point issues when finding shared vertices
    rounded = np.round(points, decimals=6)
    vertices, inverse = np.unique(rounded, axis=0, return_inverse=True)
    return vertices, inverse.reshape(-1, 3)


def simplify_mesh(stl_mesh, target_ratio=0.5, aggressiveness=7, preserve_border=True):
    """
    Reduce the triangle count with quadric error simplification (pyfqmr).

    Args:
        stl_mesh: numpy-stl mesh object
        target_ratio: Fraction of triangles to keep, in (0, 1]
        aggressiveness: pyfqmr aggressiveness (higher = faster, less accurate)
        preserve_border: Keep open boundaries (parametric surfaces) in place

    Returns:
        New mesh.Mesh object
    """
    if not 0 < target_ratio <= 1:
        raise ValueError(f"target_ratio must be in (0, 1], got {target_ratio}")
    if target_ratio == 1:
        return mesh.Mesh(stl_mesh.data.copy())

    vertices, faces = _indexed(stl_mesh)
    target_count = max(4, int(len(faces) * target_ratio))

    simplifier = pyfqmr.Simplify()
    simplifier.setMesh(vertices, faces.astype(np.int32))
    simplifier.simplify_mesh(
        target_count=target_count,
        aggressiveness=aggressiveness,
        preserve_border=preserve_border,
        verbose=0
    )
    new_vertices, new_faces, _ = simplifier.getMesh()

    logger.info(f"Simplified {len(faces)} triangles to {len(new_faces)} (target {target_count})")

    data = np.zeros(len(new_faces), dtype=mesh.Mesh.dtype)
    data['vectors'] = np.asarray(new_vertices)[np.asarray(new_faces)]
    return mesh.Mesh(data)


def to_trimesh(stl_mesh):
    """Convert numpy-stl mesh to trimesh (vertices merged)."""
    points = stl_mesh.vectors.reshape(-1, 3).astype(np.float64)
    return trimesh.Trimesh(vertices=points,
                           faces=np.arange(len(points)).reshape(-1, 3),
                           process=True)


def mesh_report(stl_mesh):
    """
    Summarize a mesh for printing.

    Returns:
        dict with triangles, vertices, watertight, volume (mm^3, None when the
        mesh is not a closed volume), bounds and size
    """
    tm = to_trimesh(stl_mesh)
    low, high = tm.bounds
    watertight = bool(tm.is_watertight)
    return {
        'triangles': len(stl_mesh.vectors),
        'vertices': len(tm.vertices),
        'watertight': watertight,
        'volume': round(float(tm.volume), 3) if watertight else None,
        'bounds': {'min': [round(float(v), 3) for v in low], 'max': [round(float(v), 3) for v in high]},
        'size': [round(float(v), 3) for v in high - low]
    }
