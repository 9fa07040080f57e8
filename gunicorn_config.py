"""
Gunicorn config: bind to 0.0.0.0 and PORT for Railway/Render.
The default in-memory login code store lives in one process; set
LOGIN_CODE_BACKEND=database before raising the worker count.
"""
import os

bind = "0.0.0.0:{}".format(os.environ.get("PORT", "8080"))
workers = int(os.environ.get("WEB_CONCURRENCY", "1"))
threads = 4
timeout = 120
