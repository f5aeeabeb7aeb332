import os

host = "0.0.0.0"
port = int(os.getenv("PORT", "3000"))
# the store lock is per process: keep one worker unless MARKETPLACE_STORE=sql
workers = int(os.getenv("UVICORN_WORKERS", "1"))
loop = "uvloop"  # requires uvicorn[standard]
http = "h11"
log_level = os.getenv("LOG_LEVEL", "info")
