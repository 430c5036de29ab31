"""
QR component - QR identity resolution.
"""

from .component import run_my_qr, run_resolve
from .models import MyQrInput, MyQrOutput, ResolveOutput, ResolveQrInput

__all__ = [
    # Entry points
    "run_resolve",
    "run_my_qr",
    # Input models
    "ResolveQrInput",
    "MyQrInput",
    # Output models
    "ResolveOutput",
    "MyQrOutput",
]
