#!/usr/bin/env python3
"""
Tests for seeded scene composition
"""
import json
import unittest

import numpy as np

from fxhash import generate_hash
from primitives import mesh_bounds
from scene import (
    BOX_SIZE,
    SCENE_KINDS,
    SURFACE_SIZE,
    compose_scene,
    features_for
)
from surfaces import SCENE_SURFACES

FAST = {'terrain_segments': 8, 'surface_segments': 10}


class TestDeterminism(unittest.TestCase):
    """Same hash, same scene"""

    def test_same_hash_same_mesh(self):
        fxhash = generate_hash(seed=100)
        a = compose_scene(fxhash, **FAST)
        b = compose_scene(fxhash, **FAST)
        self.assertEqual(a.kind, b.kind)
        self.assertEqual(a.features, b.features)
        self.assertTrue(np.array_equal(a.mesh().vectors, b.mesh().vectors))

    def test_hashes_cover_kinds(self):
        kinds = {compose_scene(generate_hash(seed=s), **FAST).kind for s in range(30)}
        self.assertTrue(kinds <= set(SCENE_KINDS))
        self.assertGreater(len(kinds), 1)

    def test_features_independent_of_resolution(self):
        fxhash = generate_hash(seed=7)
        for kind in SCENE_KINDS:
            full = compose_scene(fxhash, kind=kind, terrain_segments=20, surface_segments=20)
            self.assertEqual(features_for(fxhash, kind=kind), full.features)

    def test_forced_kind_keeps_sequence(self):
        """Forcing the drawn kind gives the same scene as letting the hash pick"""
        fxhash = generate_hash(seed=12)
        picked = compose_scene(fxhash, **FAST)
        forced = compose_scene(fxhash, kind=picked.kind, **FAST)
        self.assertEqual(picked.features, forced.features)


class TestSceneKinds(unittest.TestCase):
    """Per-kind composition"""

    def setUp(self):
        self.fxhash = generate_hash(seed=42)

    def test_box_scene(self):
        scene = compose_scene(self.fxhash, kind='box')
        self.assertEqual(scene.features, {'Scene': 'Box'})
        self.assertEqual(scene.triangle_count, 12)
        low, high = mesh_bounds(scene.mesh())
        np.testing.assert_allclose(low, [-BOX_SIZE / 2, -BOX_SIZE / 2, 0])
        np.testing.assert_allclose(high, [BOX_SIZE / 2, BOX_SIZE / 2, BOX_SIZE])

    def test_terrain_scene(self):
        scene = compose_scene(self.fxhash, kind='terrain', **FAST)
        self.assertEqual(scene.objects[0].name, 'terrain')
        for key in ('Scene', 'Noise', 'Octaves', 'Island', 'Structures'):
            self.assertIn(key, scene.features)

        structures = len(scene.objects) - 1
        if structures:
            self.assertTrue(scene.features['Structures'].startswith(f'{structures} '))
        else:
            self.assertEqual(scene.features['Structures'], 'None')

        low, _ = mesh_bounds(scene.mesh())
        self.assertAlmostEqual(float(low[2]), 0.0)
        self.assertEqual(scene.triangle_count, len(scene.mesh().vectors))

    def test_structures_appear_across_hashes(self):
        counts = [len(compose_scene(generate_hash(seed=s), kind='terrain', **FAST).objects) - 1
                  for s in range(12)]
        self.assertTrue(any(counts))

    def test_surface_scene(self):
        scene = compose_scene(self.fxhash, kind='surface', **FAST)
        self.assertEqual(len(scene.objects), 1)
        self.assertIn(scene.objects[0].name, SCENE_SURFACES)
        low, high = mesh_bounds(scene.mesh())
        self.assertAlmostEqual(float(np.max(high - low)), SURFACE_SIZE, places=2)
        self.assertAlmostEqual(float(low[2]), 0.0, places=4)

    def test_invalid_input(self):
        with self.assertRaises(ValueError):
            compose_scene(self.fxhash, kind='teapot')
        with self.assertRaises(ValueError):
            compose_scene('not-a-hash')


class TestSceneSummary(unittest.TestCase):
    """Names and serializable summaries"""

    def test_filename(self):
        fxhash = generate_hash(seed=5)
        self.assertEqual(compose_scene(fxhash, kind='box').filename, f'{fxhash}.stl')

    def test_summary_is_json(self):
        for kind in SCENE_KINDS:
            summary = compose_scene(generate_hash(seed=8), kind=kind, **FAST).summary()
            decoded = json.loads(json.dumps(summary))
            self.assertEqual(decoded['kind'], kind)
            self.assertEqual(decoded['triangles'], sum(o['triangles'] for o in decoded['objects']))


if __name__ == '__main__':
    unittest.main()
