# Authentication module

from gatepass.modules.auth.dependencies import (
    get_current_user,
    get_current_security,
    require_roles,
)

__all__ = [
    "get_current_user",
    "get_current_security",
    "require_roles",
]
