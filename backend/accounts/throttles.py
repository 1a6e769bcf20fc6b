# accounts/throttles.py
"""
Rate limiting classes for authentication endpoints.

These throttles protect against:
- Bot signups (registration)
- Brute force attacks (login)

Rates come from settings.REST_FRAMEWORK['DEFAULT_THROTTLE_RATES'].
"""

from django.conf import settings
from rest_framework.throttling import AnonRateThrottle


class _AuthThrottle(AnonRateThrottle):
    def allow_request(self, request, view):
        if getattr(settings, "TESTING", False):
            return True
        return super().allow_request(request, view)


class RegistrationThrottle(_AuthThrottle):
    """Default: 5 registrations per hour per IP."""
    scope = "registration"


class LoginThrottle(_AuthThrottle):
    """Default: 10 attempts per minute per IP."""
    scope = "login"
