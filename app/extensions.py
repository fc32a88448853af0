"""
Shared Flask extension instances.

Created as a separate module so route blueprints can decorate endpoints
before create_app() has bound the extensions to an application.
"""

from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

# Storage and the enabled flag come from RATELIMIT_* app config on init_app().
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=["100 per minute"],
)
