"""
HTTP adapters for the provider's REST services.
"""

from .base import HttpAdapter
from .identity_toolkit import IdentityToolkitClient

__all__ = ["HttpAdapter", "IdentityToolkitClient"]
