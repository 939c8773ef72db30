#!/usr/bin/env python3
"""
Tests for the fxsculpt command line
"""
import io
import json
import os
import tempfile
import unittest
from contextlib import redirect_stdout

from stl import mesh

from fxhash import generate_hash
from fxsculpt import build_parser, main


def run(argv):
    """Run the CLI and capture what it prints"""
    out = io.StringIO()
    with redirect_stdout(out):
        code = main(argv)
    return code, out.getvalue()


class TestCommandLine(unittest.TestCase):
    """End to end runs of main()"""

    def setUp(self):
        self.fxhash = generate_hash(seed=2024)
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)

    def path(self, name):
        return os.path.join(self.tmp.name, name)

    def test_parser_defaults(self):
        args = build_parser().parse_args([])
        self.assertIsNone(args.fxhash)
        self.assertEqual(args.simplify, 1.0)
        self.assertFalse(args.ascii)

    def test_box_export(self):
        output = self.path('box.stl')
        code, text = run(['--hash', self.fxhash, '--kind', 'box', '-o', output])
        self.assertEqual(code, 0)
        self.assertIn(self.fxhash, text)
        self.assertEqual(os.path.getsize(output), 84 + 50 * 12)

    def test_default_output_is_hash_name(self):
        cwd = os.getcwd()
        os.chdir(self.tmp.name)
        self.addCleanup(os.chdir, cwd)

        code, _ = run(['--hash', self.fxhash, '--kind', 'box'])
        self.assertEqual(code, 0)
        self.assertTrue(os.path.exists(f'{self.fxhash}.stl'))

    def test_terrain_ascii_export(self):
        output = self.path('terrain.stl')
        code, _ = run(['--hash', self.fxhash, '--kind', 'terrain', '--terrain-segments', '8',
                       '--ascii', '-o', output])
        self.assertEqual(code, 0)
        with open(output, 'rb') as f:
            self.assertTrue(f.read().startswith(b'solid terrain'))

    def test_simplified_export(self):
        full, reduced = self.path('full.stl'), self.path('reduced.stl')
        base = ['--hash', self.fxhash, '--kind', 'terrain', '--terrain-segments', '16']
        self.assertEqual(run(base + ['-o', full])[0], 0)
        self.assertEqual(run(base + ['--simplify', '0.3', '-o', reduced])[0], 0)
        self.assertLess(len(mesh.Mesh.from_file(reduced).vectors),
                        len(mesh.Mesh.from_file(full).vectors))

    def test_features(self):
        code, text = run(['--hash', self.fxhash, '--kind', 'terrain', '--features'])
        self.assertEqual(code, 0)
        data = json.loads(text)
        self.assertEqual(data['fxhash'], self.fxhash)
        self.assertEqual(data['features']['Scene'], 'Terrain')

    def test_estimate(self):
        code, text = run(['--hash', self.fxhash, '--kind', 'box', '--estimate'])
        self.assertEqual(code, 0)
        data = json.loads(text)
        self.assertTrue(data['feasible'])
        self.assertEqual(data['filename'], f'{self.fxhash}.stl')
        self.assertEqual(data['estimates']['triangles'], 12)

    def test_report(self):
        output = self.path('report.stl')
        code, text = run(['--hash', self.fxhash, '--kind', 'box', '--report', '-o', output])
        self.assertEqual(code, 0)
        self.assertIn('"watertight": true', text)

    def test_invalid_hash(self):
        code, text = run(['--hash', 'not-a-hash'])
        self.assertEqual(code, 1)
        self.assertIn('Error', text)

    def test_invalid_simplify(self):
        code, _ = run(['--hash', self.fxhash, '--simplify', '0'])
        self.assertEqual(code, 1)

    def test_invalid_segments(self):
        code, _ = run(['--hash', self.fxhash, '--kind', 'terrain', '--terrain-segments', '0',
                       '-o', self.path('bad.stl')])
        self.assertEqual(code, 1)


if __name__ == '__main__':
    unittest.main()
