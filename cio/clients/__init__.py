"""
Thin async clients for the third-party APIs the sync jobs talk to.
"""
from cio.clients.base import APIConnectionError, APIError, AccessToken

__all__ = ["APIConnectionError", "APIError", "AccessToken"]
