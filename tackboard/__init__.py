"""
Tackboard - terminal task board with stable card hashes and an HTTP API.
"""

__version__ = "0.4.0"
