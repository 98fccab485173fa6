"""Container storage layer.

This package adapts the hierarchical container to path-addressed reads
and writes, and reads the component catalog used to resolve loads.
"""
