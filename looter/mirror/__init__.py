"""
Mirror Integration — Keep local bare mirrors of remote repos fresh.

This module provides the registry, the git adapter and the scheduler
that clones new mirrors and refreshes ready ones on a fixed interval.
"""
