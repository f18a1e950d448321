"""Catalog Auth: OTP login with rotating access/refresh tokens."""

__version__ = "1.0.0"
