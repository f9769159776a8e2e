"""Gunicorn configuration for the identity service.

Threaded workers share one GatewayOperations per process, so the cached M2M
token and signing keys are reused across concurrent requests.

Usage:
    gunicorn -c gunicorn.conf.py "identity_service.flask_app:create_app()"
"""
import os

bind = f"{os.environ.get('HOST', '127.0.0.1')}:{os.environ.get('PORT', '3006')}"
worker_class = "gthread"
workers = int(os.environ.get("GUNICORN_WORKERS", "2"))
threads = int(os.environ.get("GUNICORN_THREADS", "8"))

# In-flight requests get 30s to finish on SIGTERM/SIGINT before workers are killed
graceful_timeout = 30
timeout = 60

loglevel = os.environ.get("LOG_LEVEL", "info").lower()
accesslog = "-"
errorlog = "-"


def post_fork(server, worker):
    """Called just after a worker has been forked."""
    secrets_dir = "/run/secrets"
    if os.path.isdir(secrets_dir) and os.listdir(secrets_dir):
        worker.log.info(f"Found {len(os.listdir(secrets_dir))} secrets in {secrets_dir}")


def worker_int(worker):
    worker.log.info("Worker received shutdown signal; draining in-flight requests")
