"""
Configuration management for the fxsculpt scene generator
Supports both development and production environments
"""

import os


class Config:
    """Base configuration"""
    # Flask
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-secret-key-change-in-production'
    MAX_CONTENT_LENGTH = int(os.environ.get('MAX_CONTENT_LENGTH', 64 * 1024))  # requests are small forms

    # Scene resolution
    TERRAIN_SEGMENTS = int(os.environ.get('TERRAIN_SEGMENTS', 96))
    SURFACE_SEGMENTS = int(os.environ.get('SURFACE_SEGMENTS', 64))
    MAX_SEGMENTS = int(os.environ.get('MAX_SEGMENTS', 512))

    # Default scene kind: 'box', 'terrain', 'surface', or empty to let the hash decide
    DEFAULT_SCENE_KIND = os.environ.get('DEFAULT_SCENE_KIND', '').lower() or None

    # Output constraints
    MAX_OUTPUT_TRIANGLES = int(os.environ.get('MAX_OUTPUT_TRIANGLES', 2_000_000))
    MAX_OUTPUT_FILE_SIZE_MB = int(os.environ.get('MAX_OUTPUT_FILE_SIZE_MB', 200))

    # Rate limiting
    RATELIMIT_ENABLED = os.environ.get('RATELIMIT_ENABLED', 'true').lower() == 'true'
    RATELIMIT_STORAGE_URL = os.environ.get('RATELIMIT_STORAGE_URL', 'memory://')
    RATELIMIT_DEFAULT = os.environ.get('RATELIMIT_DEFAULT', '30 per minute')
    RATELIMIT_EXPORT = os.environ.get('RATELIMIT_EXPORT', '5 per minute')

    # CORS
    CORS_ENABLED = os.environ.get('CORS_ENABLED', 'false').lower() == 'true'
    CORS_ORIGINS = os.environ.get('CORS_ORIGINS', '*').split(',')

    # Logging
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    LOG_FILE = os.environ.get('LOG_FILE', None)  # None = stdout only

    VERSION = os.environ.get('APP_VERSION', '0.1.0')


class DevelopmentConfig(Config):
    """Development configuration"""
    DEBUG = True
    TESTING = False
    RATELIMIT_ENABLED = False


class ProductionConfig(Config):
    """Production configuration"""
    DEBUG = False
    TESTING = False
    RATELIMIT_ENABLED = True

    # Ensure secret key is set in production
    @classmethod
    def init_app(cls, app):
        if cls.SECRET_KEY == 'dev-secret-key-change-in-production':
            import warnings
            warnings.warn(
                'SECRET_KEY not set! Using default. Set SECRET_KEY environment variable.',
                RuntimeWarning
            )


class TestingConfig(Config):
    """Testing configuration"""
    DEBUG = False
    TESTING = True
    RATELIMIT_ENABLED = False
    # Keep test scenes small
    TERRAIN_SEGMENTS = 16
    SURFACE_SEGMENTS = 16


# Configuration dictionary
config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}


def get_config(name=None):
    """Get configuration by name, or from the FLASK_ENV environment variable"""
    env = name or os.environ.get('FLASK_ENV', 'development')
    return config.get(env, config['default'])
