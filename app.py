#!/usr/bin/env python3
"""
Flask web application for fxsculpt
Serves token features, export estimates and STL downloads named after the fxhash
"""

from flask import Flask, request, send_file, jsonify, g, current_app
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_talisman import Talisman
import io
import logging
import os
import sys
import time
from functools import wraps

from config import get_config
from fxhash import generate_hash, validate_hash
from scene import SCENE_KINDS, compose_scene
from stl_export import check_export_feasibility, simplify_mesh, stl_bytes
from surfaces import SCENE_SURFACES
from terrain import NOISE_TYPES

FORMAT_BINARY = 'binary'
FORMAT_ASCII = 'ascii'
EXPORT_FORMATS = [FORMAT_BINARY, FORMAT_ASCII]
MIN_SEGMENTS = 2


def setup_logging(app):
    """Configure application logging"""
    log_level = getattr(logging, app.config['LOG_LEVEL'].upper(), logging.INFO)

    # Create formatter
    formatter = logging.Formatter(
        '[%(asctime)s] %(levelname)s in %(module)s: %(message)s'
    )

    # Console handler
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)

    # Configure app logger
    app.logger.setLevel(log_level)
    app.logger.addHandler(console_handler)

    # File handler if specified
    if app.config.get('LOG_FILE'):
        file_handler = logging.FileHandler(app.config['LOG_FILE'])
        file_handler.setFormatter(formatter)
        app.logger.addHandler(file_handler)

    # Suppress werkzeug logs in production
    if not app.config.get('DEBUG'):
        logging.getLogger('werkzeug').setLevel(logging.WARNING)


# Utility decorators
def log_request(f):
    """Decorator to log requests"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        start_time = time.time()
        try:
            result = f(*args, **kwargs)
            duration = time.time() - start_time
            current_app.logger.info(f"{request.method} {request.path} completed in {duration:.2f}s")
            return result
        except Exception as e:
            duration = time.time() - start_time
            current_app.logger.error(f"{request.method} {request.path} failed in {duration:.2f}s: {str(e)}")
            raise
    return decorated_function


def _segments(name, default):
    value = int(request.values.get(name, default))
    max_segments = current_app.config['MAX_SEGMENTS']
    if not (MIN_SEGMENTS <= value <= max_segments):
        raise ValueError(f"{name} must be between {MIN_SEGMENTS} and {max_segments}")
    return value


def validate_parameters(f):
    """Decorator to validate scene parameters; parsed values land in g.scene_params"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        try:
            fxhash = request.values.get('fxhash', '').strip()
            if not fxhash:
                return jsonify({'error': 'fxhash parameter is required'}), 400
            validate_hash(fxhash)

            kind = request.values.get('kind', '').strip().lower() or current_app.config.get('DEFAULT_SCENE_KIND')
            if kind is not None and kind not in SCENE_KINDS:
                return jsonify({'error': f'Invalid scene kind: {kind}'}), 400

            export_format = request.values.get('format', FORMAT_BINARY).lower()
            if export_format not in EXPORT_FORMATS:
                return jsonify({'error': f'Format must be one of: {", ".join(EXPORT_FORMATS)}'}), 400

            simplify = float(request.values.get('simplify', 1.0))
            if not (0.01 <= simplify <= 1.0):
                return jsonify({'error': 'Simplify ratio must be between 0.01 and 1.0'}), 400

            g.scene_params = {
                'fxhash': fxhash,
                'kind': kind,
                'ascii': export_format == FORMAT_ASCII,
                'simplify': simplify,
                'terrain_segments': _segments('terrain_segments', current_app.config['TERRAIN_SEGMENTS']),
                'surface_segments': _segments('surface_segments', current_app.config['SURFACE_SEGMENTS'])
            }
        except (ValueError, TypeError) as e:
            return jsonify({'error': f'Invalid parameter value: {str(e)}'}), 400

        return f(*args, **kwargs)

    return decorated_function


def _build_scene():
    params = g.scene_params
    return compose_scene(
        params['fxhash'],
        kind=params['kind'],
        terrain_segments=params['terrain_segments'],
        surface_segments=params['surface_segments']
    )


def _feasibility(scene):
    params = g.scene_params
    triangles = int(scene.triangle_count * params['simplify'])
    return check_export_feasibility(
        triangles,
        max_triangles=current_app.config['MAX_OUTPUT_TRIANGLES'],
        max_file_size_mb=current_app.config['MAX_OUTPUT_FILE_SIZE_MB'],
        ascii=params['ascii']
    )


def register_routes(app, limiter=None):
    """Attach the HTTP routes and error handlers to ``app``"""

    export_limit = limiter.limit(app.config['RATELIMIT_EXPORT']) if limiter else (lambda f: f)

    @app.route('/')
    def index():
        """Describe the service"""
        return jsonify({
            'service': 'fxsculpt',
            'version': app.config.get('VERSION', 'unknown'),
            'endpoints': ['/health', '/api/info', '/api/hash', '/api/features',
                          '/api/estimate', '/api/export']
        })

    @app.route('/health')
    def health_check():
        """Health check endpoint for monitoring"""
        return jsonify({
            'status': 'healthy',
            'service': 'fxsculpt'
        }), 200

    @app.route('/api/info')
    def get_info():
        """Return available scene kinds, surfaces, noise types and defaults"""
        return jsonify({
            'scene_kinds': SCENE_KINDS,
            'surfaces': SCENE_SURFACES,
            'noise_types': NOISE_TYPES,
            'formats': EXPORT_FORMATS,
            'defaults': {
                'kind': app.config.get('DEFAULT_SCENE_KIND'),
                'format': FORMAT_BINARY,
                'simplify': 1.0,
                'terrain_segments': app.config['TERRAIN_SEGMENTS'],
                'surface_segments': app.config['SURFACE_SEGMENTS']
            },
            'limits': {
                'max_triangles': app.config['MAX_OUTPUT_TRIANGLES'],
                'max_file_size_mb': app.config['MAX_OUTPUT_FILE_SIZE_MB'],
                'max_segments': app.config['MAX_SEGMENTS']
            }
        })

    @app.route('/api/hash')
    def new_hash():
        """Return a fresh random fxhash"""
        return jsonify({'fxhash': generate_hash()})

    @app.route('/api/features')
    @log_request
    @validate_parameters
    def get_features():
        """Features and scene summary for a token"""
        scene = _build_scene()
        return jsonify(scene.summary())

    @app.route('/api/estimate', methods=['GET', 'POST'])
    @log_request
    @validate_parameters
    def estimate_export():
        """
        Estimate export size and feasibility without serializing the mesh.
        """
        scene = _build_scene()
        feasibility = _feasibility(scene)

        return jsonify({
            'fxhash': scene.fxhash,
            'kind': scene.kind,
            'filename': scene.filename,
            'feasible': feasibility['feasible'],
            'reason': feasibility['reason'],
            'estimates': feasibility['estimates'],
            'suggestions': feasibility['suggestions'],
            'limits': {
                'max_triangles': app.config['MAX_OUTPUT_TRIANGLES'],
                'max_file_size_mb': app.config['MAX_OUTPUT_FILE_SIZE_MB']
            }
        })

    @app.route('/api/export', methods=['POST'])
    @export_limit
    @log_request
    @validate_parameters
    def export_stl():
        """Generate the token's scene and return it as <fxhash>.stl"""
        params = g.scene_params
        app.logger.info(f"Export request - fxhash={params['fxhash']}, kind={params['kind']}, "
                        f"ascii={params['ascii']}, simplify={params['simplify']}")

        try:
            scene = _build_scene()
            feasibility = _feasibility(scene)

            estimates = feasibility['estimates']
            app.logger.info(f"Export estimates: {estimates['triangles']:,} triangles, "
                            f"{estimates['file_size_mb']:.1f}MB file")

            if not feasibility['feasible']:
                app.logger.warning(f"Export rejected: {feasibility['reason']}")
                return jsonify({
                    'error': feasibility['reason'],
                    'suggestions': feasibility['suggestions'],
                    'estimates': estimates
                }), 400

            output_mesh = scene.mesh()
            if params['simplify'] < 1.0:
                output_mesh = simplify_mesh(output_mesh, target_ratio=params['simplify'])

            name = os.path.splitext(scene.filename)[0]
            output_data = stl_bytes(output_mesh, name=name, ascii=params['ascii'])
        except MemoryError:
            app.logger.error("Out of memory during export")
            return jsonify({'error': 'Out of memory. Try fewer segments or a lower simplify ratio.'}), 500
        except ValueError as ve:
            app.logger.error(f"Generation error: {str(ve)}")
            return jsonify({'error': f'Generation error: {str(ve)}'}), 400

        app.logger.info(f"Exported {scene.filename} - {len(output_mesh.vectors)} triangles, "
                        f"{len(output_data) / 1024:.1f} KB")

        response = send_file(
            io.BytesIO(output_data),
            mimetype='text/plain' if params['ascii'] else 'application/octet-stream',
            as_attachment=True,
            download_name=scene.filename
        )
        response.headers['X-Fxhash'] = scene.fxhash
        response.headers['X-Scene-Kind'] = scene.kind
        response.headers['X-Triangles'] = str(len(output_mesh.vectors))
        return response

    # Error handlers
    @app.errorhandler(404)
    def not_found(error):
        """Handle 404 errors"""
        return jsonify({'error': 'Not found'}), 404

    @app.errorhandler(413)
    def request_entity_too_large(error):
        """Handle oversized requests"""
        return jsonify({'error': 'Request too large'}), 413

    @app.errorhandler(429)
    def rate_limited(error):
        """Handle rate limit errors"""
        return jsonify({'error': 'Rate limit exceeded. Please try again later.'}), 429

    @app.errorhandler(500)
    def internal_error(error):
        """Handle 500 errors"""
        app.logger.error(f"Internal error: {error}")
        return jsonify({'error': 'Internal server error'}), 500


def create_app(config_name=None):
    """Application factory for testing and production"""
    app = Flask(__name__)

    # Load configuration
    config_class = get_config(config_name)
    app.config.from_object(config_class)
    if hasattr(config_class, 'init_app'):
        config_class.init_app(app)

    setup_logging(app)

    # Initialize CORS if enabled
    if app.config.get('CORS_ENABLED'):
        CORS(app, origins=app.config.get('CORS_ORIGINS', '*'))
        app.logger.info(f"CORS enabled for origins: {app.config.get('CORS_ORIGINS')}")

    # Initialize rate limiter if enabled
    limiter = None
    if app.config.get('RATELIMIT_ENABLED'):
        limiter = Limiter(
            key_func=get_remote_address,
            app=app,
            storage_uri=app.config.get('RATELIMIT_STORAGE_URL', 'memory://'),
            default_limits=[app.config.get('RATELIMIT_DEFAULT', '30 per minute')]
        )
        app.logger.info("Rate limiting enabled")

    # Security headers (only in production)
    if not app.config.get('DEBUG') and not app.config.get('TESTING'):
        Talisman(app, content_security_policy={'default-src': "'self'"}, force_https=False)
        app.logger.info("Security headers enabled")

    register_routes(app, limiter)
    return app


app = create_app()


if __name__ == '__main__':
    # Development server
    port = int(os.environ.get('PORT', 8000))
    app.logger.info(f"Starting development server on port {port}")
    app.logger.info(f"Access the application at: http://localhost:{port}")
    app.run(host='0.0.0.0', port=port, debug=app.config.get('DEBUG', False))
