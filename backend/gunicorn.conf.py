import os

# Application
wsgi_app = "authcore:create_app()"

# Bind & workers
bind = os.getenv("GUNICORN_BIND", "0.0.0.0:8000")
workers = int(os.getenv("GUNICORN_WORKERS", "2"))
threads = int(os.getenv("GUNICORN_THREADS", "1"))
timeout = 60
graceful_timeout = 30
keepalive = 5

# Logs to stdout/stderr (collected by the container runtime)
accesslog = "-"
errorlog = "-"
loglevel = os.getenv("LOG_LEVEL", "info").lower()

# Trust proxy headers
forwarded_allow_ips = os.getenv("FORWARDED_ALLOW_IPS", "*")
proxy_protocol = False

# The in-memory refresh store is per process; refuse to fork with it.
if os.getenv("REFRESH_TOKEN_BACKEND", "database").strip().lower() == "memory" and workers > 1:
    raise RuntimeError("REFRESH_TOKEN_BACKEND=memory requires a single gunicorn worker.")
