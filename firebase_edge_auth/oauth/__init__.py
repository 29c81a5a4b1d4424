"""
Service-account OAuth 2.0 token acquisition.
"""

from .service_account import ServiceAccountTokenProvider

__all__ = ["ServiceAccountTokenProvider"]
