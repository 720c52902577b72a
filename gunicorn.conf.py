"""
Gunicorn configuration for the mood tracker API.

Run with:  gunicorn moodtracker.main:app -c gunicorn.conf.py

Env vars that override defaults:
  PORT       TCP port to bind
  LOG_LEVEL  gunicorn log level (default: info)
"""
import os

bind = f"0.0.0.0:{os.environ.get('PORT', '8000')}"

# Exactly one worker: the tracker controller is the single in-process owner
# of the current snapshot. More workers would each hold a diverging copy.
workers = 1

# Uvicorn's ASGI event loop inside Gunicorn's process manager.
worker_class = "uvicorn.workers.UvicornWorker"

keepalive = 5
timeout = 120

# Logs to stdout only.
loglevel = os.environ.get("LOG_LEVEL", "info").lower()
accesslog = "-"
errorlog = "-"
access_log_format = '%(h)s "%(r)s" %(s)s %(b)sB %(D)sµs'

# Let the lifespan hook stop the controller worker cleanly.
graceful_timeout = 30
