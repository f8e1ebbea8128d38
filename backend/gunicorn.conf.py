import os

# Bind & workers
bind = os.getenv("GUNICORN_BIND", "0.0.0.0:8000")
workers = int(os.getenv("GUNICORN_WORKERS", "2"))
# Threads share one PasswordHasher pool per worker
threads = int(os.getenv("GUNICORN_THREADS", "4"))
timeout = 60
graceful_timeout = 30
keepalive = 5

# Logs to stdout/stderr (collected by Docker)
accesslog = "-"
errorlog = "-"
loglevel = os.getenv("LOG_LEVEL", "info").lower()

# Honour proxy headers (ProxyFix handles X-Forwarded-* inside the app)
forwarded_allow_ips = "*"
proxy_protocol = False

wsgi_app = "moviehub_auth:create_app()"
