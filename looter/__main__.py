"""
Run the daemon CLI directly.

Usage:
    python -m looter serve
    python -m looter status
"""

from .main import cli

if __name__ == "__main__":
    cli()
