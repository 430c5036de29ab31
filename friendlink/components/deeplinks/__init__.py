"""
Deep links component - Invitation URI formatting.
"""

from .component import INVITE_HOST, DeepLinkFormatter, is_valid_identifier

__all__ = [
    "DeepLinkFormatter",
    "INVITE_HOST",
    "is_valid_identifier",
]
