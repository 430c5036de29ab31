"""
Authorization gate component.
"""

from .component import authorize

__all__ = ["authorize"]
