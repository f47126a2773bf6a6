import os

# Point settings at SQLite before any partstock module builds its engine
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("EVENT_BROADCAST_ENABLED", "false")
os.environ.setdefault("SCHEDULER_ENABLED", "false")
