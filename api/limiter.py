"""
api/limiter.py -- Shared slowapi rate limiter instance.

api/main.py mounts it (SlowAPIMiddleware reads app.state.limiter) and
api/routes/v1/users.py applies the login limit with @limiter.limit().

One shared instance means one counter store. Separate Limiter objects per
module would each count on their own and the login limit would never trip.
Counters are per client IP and live in process memory, so they reset on
restart and are not shared between workers.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

limiter = Limiter(key_func=get_remote_address, storage_uri="memory://")
