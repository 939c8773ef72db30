#!/usr/bin/env python3
"""
Tests for the Flask service using the test client
"""
import unittest

from app import create_app
from fxhash import generate_hash, validate_hash
from scene import SCENE_KINDS


class TestService(unittest.TestCase):
    """Routes under the testing configuration"""

    def setUp(self):
        self.app = create_app('testing')
        self.client = self.app.test_client()
        self.fxhash = generate_hash(seed=77)

    def test_health(self):
        response = self.client.get('/health')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json()['status'], 'healthy')

    def test_index(self):
        data = self.client.get('/').get_json()
        self.assertEqual(data['service'], 'fxsculpt')
        self.assertIn('/api/export', data['endpoints'])

    def test_info(self):
        data = self.client.get('/api/info').get_json()
        self.assertEqual(data['scene_kinds'], SCENE_KINDS)
        self.assertEqual(data['defaults']['terrain_segments'], 16)
        self.assertIn('ascii', data['formats'])

    def test_new_hash(self):
        data = self.client.get('/api/hash').get_json()
        self.assertEqual(validate_hash(data['fxhash']), data['fxhash'])

    def test_features(self):
        response = self.client.get(f'/api/features?fxhash={self.fxhash}&kind=terrain')
        self.assertEqual(response.status_code, 200)
        data = response.get_json()
        self.assertEqual(data['fxhash'], self.fxhash)
        self.assertEqual(data['filename'], f'{self.fxhash}.stl')
        self.assertEqual(data['features']['Scene'], 'Terrain')

    def test_features_requires_hash(self):
        response = self.client.get('/api/features')
        self.assertEqual(response.status_code, 400)
        self.assertIn('fxhash', response.get_json()['error'])

    def test_invalid_parameters(self):
        cases = [
            {'fxhash': 'oo0000'},
            {'fxhash': self.fxhash, 'kind': 'teapot'},
            {'fxhash': self.fxhash, 'format': 'obj'},
            {'fxhash': self.fxhash, 'simplify': '2'},
            {'fxhash': self.fxhash, 'simplify': 'lots'},
            {'fxhash': self.fxhash, 'terrain_segments': '100000'},
        ]
        for form in cases:
            response = self.client.post('/api/estimate', data=form)
            self.assertEqual(response.status_code, 400, form)
            self.assertIn('error', response.get_json())

    def test_estimate(self):
        response = self.client.post('/api/estimate', data={'fxhash': self.fxhash, 'kind': 'box'})
        self.assertEqual(response.status_code, 200)
        data = response.get_json()
        self.assertTrue(data['feasible'])
        self.assertEqual(data['estimates']['triangles'], 12)
        self.assertEqual(data['filename'], f'{self.fxhash}.stl')

    def test_export_binary(self):
        response = self.client.post('/api/export', data={'fxhash': self.fxhash, 'kind': 'terrain'})
        self.assertEqual(response.status_code, 200)
        self.assertIn(f'{self.fxhash}.stl', response.headers['Content-Disposition'])
        self.assertEqual(response.headers['X-Fxhash'], self.fxhash)
        self.assertEqual(response.headers['X-Scene-Kind'], 'terrain')
        triangles = int(response.headers['X-Triangles'])
        self.assertEqual(len(response.data), 84 + 50 * triangles)

    def test_export_ascii(self):
        response = self.client.post('/api/export', data={
            'fxhash': self.fxhash, 'kind': 'box', 'format': 'ascii'
        })
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.data.startswith(b'solid'))

    def test_export_is_reproducible(self):
        form = {'fxhash': self.fxhash, 'kind': 'surface'}
        first = self.client.post('/api/export', data=form).data
        second = self.client.post('/api/export', data=form).data
        self.assertEqual(first, second)

    def test_export_simplified(self):
        full = self.client.post('/api/export', data={'fxhash': self.fxhash, 'kind': 'terrain'})
        reduced = self.client.post('/api/export', data={
            'fxhash': self.fxhash, 'kind': 'terrain', 'simplify': '0.3'
        })
        self.assertEqual(reduced.status_code, 200)
        self.assertLess(int(reduced.headers['X-Triangles']), int(full.headers['X-Triangles']))

    def test_export_rejected_over_limit(self):
        self.app.config['MAX_OUTPUT_TRIANGLES'] = 10
        response = self.client.post('/api/export', data={'fxhash': self.fxhash, 'kind': 'box'})
        self.assertEqual(response.status_code, 400)
        data = response.get_json()
        self.assertIn('exceeds maximum', data['error'])
        self.assertTrue(data['suggestions'])

    def test_export_requires_post(self):
        response = self.client.get(f'/api/export?fxhash={self.fxhash}')
        self.assertEqual(response.status_code, 405)

    def test_not_found(self):
        response = self.client.get('/nope')
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.get_json()['error'], 'Not found')


class TestRateLimit(unittest.TestCase):
    """Export rate limiting under the production configuration"""

    def test_export_limit(self):
        app = create_app('production')
        app.config['TESTING'] = True
        client = app.test_client()
        fxhash = generate_hash(seed=78)

        limit = int(app.config['RATELIMIT_EXPORT'].split()[0])
        statuses = [client.post('/api/export', data={'fxhash': fxhash, 'kind': 'box'}).status_code
                    for _ in range(limit + 1)]
        self.assertEqual(statuses[:limit], [200] * limit)
        self.assertEqual(statuses[-1], 429)


if __name__ == '__main__':
    unittest.main()
