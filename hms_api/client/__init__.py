"""Admin API session client"""

from hms_api.client.session import APIRequestError, RefreshingAuth, SessionClient, TokenStore

__all__ = ["APIRequestError", "RefreshingAuth", "SessionClient", "TokenStore"]
