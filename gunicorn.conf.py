"""
Gunicorn configuration

Uvicorn workers serving sokonova_analytics.main:app.
"""

import multiprocessing
import os

# Server socket
bind = os.getenv("BIND", "0.0.0.0:8000")
backlog = 2048

# Workers. Analytics queries are I/O bound, keep the count modest
# so each worker's connections fit the Postgres limit.
workers = int(os.getenv("WORKERS", min(multiprocessing.cpu_count() * 2 + 1, 8)))
worker_class = "uvicorn.workers.UvicornWorker"
max_requests = 10000
max_requests_jitter = 1000
timeout = 120
keepalive = 5
graceful_timeout = 30

proc_name = "sokonova-analytics-api"

# Logging; application logs go through structlog on stdout
errorlog = "-"
accesslog = None
loglevel = os.getenv("LOG_LEVEL", "info").lower()


def post_fork(server, worker):
    """Each worker configures its own structured logging."""
    from sokonova_analytics.config.logging import configure_logging

    configure_logging()
    server.log.info("Worker spawned (pid: %s)", worker.pid)
