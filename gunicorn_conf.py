from digital_forms.config import settings

# Server socket
bind = f"{settings.HOST}:{settings.PORT}"
backlog = 2048

# Worker processes
workers = settings.WORKERS
worker_class = "uvicorn.workers.UvicornWorker"
worker_connections = 1000
timeout = 30
keepalive = 2

# Logging (requests are logged by LoggingMiddleware with link codes truncated)
accesslog = None
errorlog = "-"
loglevel = settings.get_log_level().lower()

# Process naming
proc_name = "digital_forms_api"

# Server mechanics
daemon = False
pidfile = None
umask = 0
