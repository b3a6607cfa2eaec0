"""Request rate limiting."""

from slowapi import Limiter
from slowapi.util import get_remote_address

limiter = Limiter(key_func=get_remote_address)

# Each send fans out to up to three paid provider calls
SEND_LIMIT = "10/minute"
REGISTER_LIMIT = "5/minute"
LOGIN_LIMIT = "10/minute"
