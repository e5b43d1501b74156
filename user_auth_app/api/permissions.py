"""Auth API permissions.

Lightweight permissions used by the registration and login endpoints.
"""

from rest_framework.permissions import AllowAny


class AllowAnyRegistration(AllowAny):
    """Explicit alias for registration endpoints (semantics: allow any)."""
    pass


class AllowedAnyLogin(AllowAny):
    """Explicit alias for login endpoints (semantics: allow any)."""
    pass
