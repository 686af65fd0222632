"""Gunicorn configuration for production deployment.

Cloud Run provides a PORT environment variable; everything else can be
tuned through GUNICORN_* variables.
"""

import multiprocessing
import os

port = os.environ.get("PORT", "8080")
bind = f"0.0.0.0:{port}"

# Screening is I/O bound (search, scrape, LLM); a couple of async workers per instance
workers = int(os.environ.get("GUNICORN_WORKERS", min(2, multiprocessing.cpu_count())))
worker_class = "uvicorn.workers.UvicornWorker"

# Five pages scraped and analyzed one at a time can take several minutes
timeout = int(os.environ.get("GUNICORN_TIMEOUT", "600"))
# Detached runs get time to finish and persist on shutdown
graceful_timeout = int(os.environ.get("GUNICORN_GRACEFUL_TIMEOUT", "120"))
keepalive = int(os.environ.get("GUNICORN_KEEPALIVE", "5"))

loglevel = os.environ.get("GUNICORN_LOG_LEVEL", "info")
accesslog = "-"
errorlog = "-"

# The in-memory record store is per worker process; use supabase for shared history
preload_app = True
backlog = 2048

max_requests = int(os.environ.get("GUNICORN_MAX_REQUESTS", "1000"))
max_requests_jitter = int(os.environ.get("GUNICORN_MAX_REQUESTS_JITTER", "50"))
