# gunicorn.conf.py
import os

# Worker configuration
workers = int(os.getenv("GUNICORN_WORKERS", 2))
worker_class = "sync"
timeout = int(os.getenv("GUNICORN_TIMEOUT", 30))
keepalive = 2
max_requests = 1000
max_requests_jitter = 50

# Logging
accesslog = "-"
errorlog = "-"
loglevel = os.getenv("GUNICORN_LOG_LEVEL", "info")

# Process naming
proc_name = "chat-app"

# Bind address
bind = os.getenv("GUNICORN_BIND", "0.0.0.0:8000")

wsgi_app = "chatsite.wsgi:application"

# Behind a proxy
forwarded_allow_ips = "*"
