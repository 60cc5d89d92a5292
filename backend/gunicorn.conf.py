import os

wsgi_app = "sessionguard:create_app()"

# Bind & workers. The in-memory state store lives inside one process, so more
# than one worker requires STATE_STORE_URL (Redis).
bind = os.getenv("GUNICORN_BIND", "0.0.0.0:8000")
workers = int(os.getenv("GUNICORN_WORKERS", "1" if not os.getenv("STATE_STORE_URL") else "2"))
threads = int(os.getenv("GUNICORN_THREADS", "4"))
timeout = 60
graceful_timeout = 30
keepalive = 5

# Logs to stdout/stderr (collected by Docker)
accesslog = "-"
errorlog = "-"
loglevel = os.getenv("LOG_LEVEL", "info").lower()

forwarded_allow_ips = "*"
