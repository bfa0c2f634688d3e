"""
Selective Repeat ARQ - reliable in-order delivery over an unreliable channel.

Subpackages:
- arq: Packet, sender, receiver and timer components
- channel: Unreliable channel model
- utils: Logging and metrics
"""

__version__ = "1.0.0"
