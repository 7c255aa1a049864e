"""
Authentication Package
Bearer token boundary; who the owner is, nothing more
"""

from cvstudio.auth.dependencies import create_access_token, decode_access_token, get_current_owner

__all__ = [
    "create_access_token",
    "decode_access_token",
    "get_current_owner",
]
