"""
Channel package - Unreliable channel model.

Contains implementations for:
- Lossy, corrupting, reordering channel between entities A and B
"""

from .unreliable import UnreliableChannel, TransmitResult

__all__ = [
    'UnreliableChannel',
    'TransmitResult'
]
