"""Gunicorn configuration for the deal aggregator API.

Bind address and log level come from the same Settings the app uses.
Runs a single worker: the file cache and its cleanup sweeper assume one
process owns the cache root.

Usage (from server/):
    gunicorn main:app -c gunicorn.conf.py
"""
import os

from core.config import Settings

settings = Settings()

bind = f"{settings.host}:{settings.port}"
workers = 1
worker_class = "uvicorn.workers.UvicornWorker"

timeout = int(os.getenv("GUNICORN_TIMEOUT", "120"))
graceful_timeout = int(os.getenv("GUNICORN_GRACEFUL_TIMEOUT", "30"))

accesslog = None if settings.debug else "-"
errorlog = "-"
loglevel = settings.log_level.lower()

proc_name = "deal-aggregator"
