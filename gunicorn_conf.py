"""
Gunicorn settings for the TradeNest API
Usage: gunicorn -c gunicorn_conf.py api_server:app
"""
import os

bind = f"0.0.0.0:{os.getenv('PORT', '5000')}"

# Each worker runs its own expiry scheduler; completions are conditional updates so overlapping sweeps settle once
workers = int(os.getenv("WEB_CONCURRENCY", "2"))
worker_class = "uvicorn.workers.UvicornWorker"
timeout = int(os.getenv("GUNICORN_TIMEOUT", "60"))
graceful_timeout = 30
keepalive = 5
max_requests = int(os.getenv("GUNICORN_MAX_REQUESTS", "5000"))
max_requests_jitter = 500

accesslog = "-"
errorlog = "-"
loglevel = os.getenv("LOG_LEVEL", "info")

proc_name = "tradenest_api"

# Engine pool and scheduler loop are created per worker
preload_app = False


def when_ready(server):
    print(f"✅ TradeNest API listening on {bind} with {workers} workers")


def post_fork(server, worker):
    print(f"🔧 Worker {worker.pid} forked; expiry scheduler starts in its lifespan")


def worker_exit(server, worker):
    print(f"👋 Worker {worker.pid} exited; its scheduler stopped with it")
