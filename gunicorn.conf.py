"""
Gunicorn configuration for the SipSense API.

    gunicorn -c gunicorn.conf.py sipsense.main:app

Env vars that override defaults:
  PORT     — TCP port to bind (default: 8000)

The engine session (behavior logs, models, pending suggestions, background
trainers) lives in process memory: one worker per database.
"""
import os

bind = f"0.0.0.0:{os.environ.get('PORT', '8000')}"

workers = 1

# Uvicorn's ASGI event loop inside Gunicorn's process manager.
worker_class = "uvicorn.workers.UvicornWorker"

keepalive = 5

# Kill a worker that hasn't responded in 120 s.
timeout = 120

# stdout only; the app's own structlog output goes to the same stream.
loglevel = "info"
accesslog = "-"
errorlog = "-"
access_log_format = '%(h)s "%(r)s" %(s)s %(b)sB %(D)sµs'

# Wait up to 30 s for in-flight requests (and the trainers) to finish.
graceful_timeout = 30
