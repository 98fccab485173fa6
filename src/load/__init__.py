"""Selective loading and incremental merge.

This package normalizes partial-load requests, materializes the
resolved components and merges later loads into existing objects.
"""
