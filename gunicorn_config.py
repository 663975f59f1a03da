import multiprocessing

# Gunicorn production configuration for the POS API.
# Till requests are short and DB-bound: (2 x CPU) + 1 threaded workers.
workers = multiprocessing.cpu_count() * 2 + 1
threads = 2
worker_class = 'gthread'
bind = '0.0.0.0:8000'

# Sale submission holds row locks; keep the timeout well above it
timeout = 60
graceful_timeout = 30
max_requests = 1000
max_requests_jitter = 100
keepalive = 5

# Logging
accesslog = '-'       # Stdout
errorlog = '-'        # Stderr
loglevel = 'info'
capture_output = True
