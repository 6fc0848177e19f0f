from slowapi import Limiter
from slowapi.util import get_remote_address

# Shared by every router; create_app switches it on or off from settings
limiter = Limiter(key_func=get_remote_address)
