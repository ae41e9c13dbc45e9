import os

HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", 3000))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FILE = os.getenv("LOG_FILE", None)

STATIC_DIR = os.getenv("STATIC_DIR", os.path.join(os.path.dirname(os.path.abspath(__file__)), "static"))

# 0 means no ceiling on the number of live rooms
MAX_ROOMS = int(os.getenv("MAX_ROOMS", 0))

RELOAD = os.getenv("RELOAD", "").lower() in ("1", "true", "yes")

# messages queued per connection before new ones are dropped; 0 means unbounded
OUTBOX_SIZE = int(os.getenv("OUTBOX_SIZE", 256))
