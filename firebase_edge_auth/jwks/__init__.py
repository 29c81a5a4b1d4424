"""
Public key client package.

Retrieves and caches the x509 certificates the provider signs ID tokens and
session cookies with. Certificates are cached until the Cache-Control max-age
of the response, and the map is refreshed once when a token names an unknown
key id (the provider rotates keys regularly).
"""

from .client import PublicKeyClient, parse_max_age

__all__ = ["PublicKeyClient", "parse_max_age"]
