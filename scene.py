#!/usr/bin/env python3
"""
Seeded scene composition.

compose_scene() turns an fxhash into a Scene: a small set of positioned
meshes plus the token's feature dictionary. Everything is drawn from a single
FxRandom in a fixed order, so a scene is a pure function of
(fxhash, kind, resolution). Reordering draws changes every existing token.

Scene kinds:
  box      - the original demo: a single 50mm cube resting on the ground
  terrain  - fbm heightfield solid with a few structures standing on it
  surface  - one parametric surface fitted into a 120mm bounding box
"""

import logging

import numpy as np

from fxhash import FxRandom
from primitives import generate_box, generate_cube, generate_cylinder, merge_meshes
from surfaces import SCENE_SURFACES, fit_to_size, get_surface, parametric_mesh
from terrain import HeightField, generate_terrain
from stl_export import export_filename

logger = logging.getLogger(__name__)

SCENE_BOX = 'box'
SCENE_TERRAIN = 'terrain'
SCENE_SURFACE = 'surface'

SCENE_KINDS = [SCENE_BOX, SCENE_TERRAIN, SCENE_SURFACE]

# Relative rarity of each kind when the hash picks it
SCENE_WEIGHTS = [
    (SCENE_TERRAIN, 50),
    (SCENE_SURFACE, 35),
    (SCENE_BOX, 15),
]

BOX_SIZE = 50.0
TERRAIN_SIZE = 200.0
TERRAIN_BASE = 4.0
SURFACE_SIZE = 120.0
MAX_STRUCTURES = 6

DEFAULT_TERRAIN_SEGMENTS = 96
DEFAULT_SURFACE_SEGMENTS = 64


class SceneObject:
    """A named mesh already placed in scene coordinates."""

    def __init__(self, name, mesh):
        self.name = name
        self.mesh = mesh

    @property
    def triangle_count(self):
        return len(self.mesh.vectors)

    def __repr__(self):
        return f"SceneObject({self.name!r}, triangles={self.triangle_count})"


class Scene:
    """Generated scene for one fxhash."""

    def __init__(self, fxhash, kind):
        self.fxhash = fxhash
        self.kind = kind
        self.objects = []
        self.features = {}
        self.parameters = {}

    def add(self, name, mesh):
        obj = SceneObject(name, mesh)
        self.objects.append(obj)
        return obj

    @property
    def triangle_count(self):
        return sum(obj.triangle_count for obj in self.objects)

    @property
    def filename(self):
        return export_filename(self.fxhash)

    def mesh(self):
        """All objects merged into a single mesh for export."""
        return merge_meshes(obj.mesh for obj in self.objects)

    def summary(self):
        return {
            'fxhash': self.fxhash,
            'kind': self.kind,
            'filename': self.filename,
            'triangles': self.triangle_count,
            'objects': [{'name': obj.name, 'triangles': obj.triangle_count} for obj in self.objects],
            'features': self.features,
            'parameters': self.parameters
        }


def _compose_box(scene, rng):
    scene.add('box', generate_cube(BOX_SIZE, position=(0, 0, BOX_SIZE / 2)))
    scene.features['Scene'] = 'Box'


def _place_structures(scene, rng, field, count):
    """Stand boxes or towers on the terrain surface."""
    style = rng.choice(['Boxes', 'Towers'])
    half = TERRAIN_SIZE / 2 * 0.8

    for i in range(count):
        x = rng.uniform(-half, half)
        y = rng.uniform(-half, half)
        footprint = rng.uniform(6.0, 20.0)
        height = rng.uniform(10.0, 45.0)

        # Sink 1mm into the ground so the structure overlaps the terrain
        ground = TERRAIN_BASE + field.height(x, y) - 1.0
        center = (x, y, ground + height / 2)

        if style == 'Boxes':
            structure = generate_box(footprint, footprint, height, position=center)
        else:
            structure = generate_cylinder(radius=footprint / 2, height=height, position=center, segments=24)
        scene.add(f'{style[:-1].lower()}_{i}', structure)

    return style


def _compose_terrain(scene, rng, segments):
    field = HeightField.from_random(rng, extent=(TERRAIN_SIZE, TERRAIN_SIZE))
    count = rng.randint(0, MAX_STRUCTURES)

    terrain = generate_terrain(field, TERRAIN_SIZE, TERRAIN_SIZE, segments=segments,
                               base_thickness=TERRAIN_BASE)
    scene.add('terrain', terrain)
    scene.parameters['terrain'] = field.describe()

    scene.features['Scene'] = 'Terrain'
    scene.features['Noise'] = field.noise_type.capitalize()
    scene.features['Octaves'] = field.octaves
    scene.features['Island'] = field.island

    if count:
        style = _place_structures(scene, rng, field, count)
        scene.features['Structures'] = f'{count} {style}'
    else:
        scene.features['Structures'] = 'None'


def _surface_params(name, rng):
    if name == 'torus':
        return {'major': 2.0, 'minor': rng.uniform(0.3, 1.2)}
    if name == 'noise_sphere':
        return {
            'displacement': rng.uniform(0.1, 0.45),
            'octaves': rng.randint(2, 6),
            'frequency': rng.uniform(0.8, 3.0),
            'offset': (rng.uniform(0, 100), rng.uniform(0, 100), rng.uniform(0, 100))
        }
    return {}


def _compose_surface(scene, rng, segments):
    name = rng.choice(SCENE_SURFACES)
    params = _surface_params(name, rng)
    turns = rng.randint(0, 3)

    surface = parametric_mesh(get_surface(name, **params), slices=segments, stacks=segments)
    # Quarter turns about Z vary the silhouette without changing the footprint
    if turns:
        surface.rotate([0.0, 0.0, 1.0], np.pi / 2 * turns)
    surface = fit_to_size(surface, SURFACE_SIZE)
    scene.add(name, surface)
    scene.parameters['surface'] = dict(params, name=name, quarter_turns=turns)

    scene.features['Scene'] = 'Surface'
    scene.features['Surface'] = name.replace('_', ' ').title()


def compose_scene(fxhash, kind=None, terrain_segments=DEFAULT_TERRAIN_SEGMENTS,
                  surface_segments=DEFAULT_SURFACE_SEGMENTS):
    """
    Build the scene for an fxhash.

    Args:
        fxhash: Token hash driving every random choice
        kind: 'box', 'terrain' or 'surface'; None lets the hash decide
        terrain_segments: Grid cells per side of the terrain heightfield
        surface_segments: Slices and stacks of parametric surfaces

    Returns:
        Scene object
    """
    rng = FxRandom(fxhash)

    # Always consume the kind draw so a forced kind keeps the rest of the sequence
    drawn = rng.weighted_choice(SCENE_WEIGHTS)
    if kind is None:
        kind = drawn
    elif kind not in SCENE_KINDS:
        raise ValueError(f"Unknown scene kind: {kind}. Choose from {', '.join(SCENE_KINDS)}")

    scene = Scene(fxhash, kind)
    logger.info(f"Composing {kind} scene for {fxhash}")

    if kind == SCENE_BOX:
        _compose_box(scene, rng)
    elif kind == SCENE_TERRAIN:
        _compose_terrain(scene, rng, terrain_segments)
    else:
        _compose_surface(scene, rng, surface_segments)

    logger.info(f"Scene has {len(scene.objects)} objects, {scene.triangle_count} triangles")
    return scene


def features_for(fxhash, kind=None):
    """Feature dictionary of a token without keeping its meshes around."""
    return compose_scene(fxhash, kind=kind, terrain_segments=8, surface_segments=8).features
