"""
Looter — Git mirror daemon.

Keeps named git repositories mirrored to local storage and refreshes
them on a fixed schedule, with a small HTTP API to add and list mirrors.
"""

__version__ = "0.1.0"
