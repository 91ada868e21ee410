"""
Production Server Configuration

Run the collector with Uvicorn workers under Gunicorn. Keep WORKERS at 1
unless admission control is acceptable per worker: rate-limit windows are
held in process memory.
"""

import os

# Server socket
bind = os.getenv("BIND", "0.0.0.0:8000")
backlog = 2048

# Worker processes
workers = int(os.getenv("WORKERS", 1))
worker_class = "uvicorn.workers.UvicornWorker"
worker_connections = 1000
max_requests = 10000
max_requests_jitter = 1000
timeout = 30
keepalive = 5
graceful_timeout = 30

# Process naming
proc_name = "lightweight-web-analytics"

# Server mechanics
daemon = False
pidfile = "/tmp/gunicorn-analytics.pid"

# Logging
errorlog = "-"
loglevel = os.getenv("LOG_LEVEL", "info").lower()
accesslog = "-"
access_log_format = '%(h)s %(l)s %(u)s %(t)s "%(r)s" %(s)s %(b)s "%(f)s" "%(a)s" %(D)s'
