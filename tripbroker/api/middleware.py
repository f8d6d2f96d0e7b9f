"""Rate limiting (slowapi) keyed on the client address; limits are set per route."""

from slowapi import Limiter
from slowapi.util import get_remote_address

limiter = Limiter(key_func=get_remote_address)
