"""Gunicorn configuration file for production deployment of fxsculpt"""

import multiprocessing
import os

# Application
wsgi_app = 'app:app'
raw_env = ['FLASK_ENV=production']

# Server socket
bind = f"0.0.0.0:{os.environ.get('PORT', '5000')}"
backlog = 2048

# Worker processes; scene generation is CPU bound
workers = int(os.environ.get('GUNICORN_WORKERS', multiprocessing.cpu_count() + 1))
worker_class = 'sync'
timeout = int(os.environ.get('GUNICORN_TIMEOUT', 300))
keepalive = 2

# Logging
accesslog = '-'  # Log to stdout
errorlog = '-'   # Log to stderr
loglevel = os.environ.get('LOG_LEVEL', 'info').lower()
access_log_format = '%(h)s %(l)s %(u)s %(t)s "%(r)s" %(s)s %(b)s "%(f)s" "%(a)s" %(D)s'

# Process naming
proc_name = 'fxsculpt'

# Preload app so workers share the imported noise/numpy modules
preload_app = True

# Max requests before restart (large exports fragment memory)
max_requests = 500
max_requests_jitter = 50


def when_ready(server):
    """Called just after the server is started."""
    server.log.info(f"fxsculpt ready. Listening on {bind}")


def on_exit(server):
    """Called just before exiting Gunicorn."""
    server.log.info("Shutting down fxsculpt...")
