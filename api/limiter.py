"""
api/limiter.py -- Shared slowapi rate limiter instance.

Imported by api/main.py (to mount as middleware) and api/routes/auth.py (to
limit POST /api/auth/login with @limiter.limit()).

A single shared instance means every route shares the same in-memory counter
store. Separate instances per module would each keep their own counters and
limits would never trigger.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

limiter = Limiter(key_func=get_remote_address, storage_uri="memory://")
