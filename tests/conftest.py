import os

# Settings are read once at import time; keep tests off the on-disk database
# and on a cheap bcrypt work factor.
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("ENVIRONMENT", "test")
