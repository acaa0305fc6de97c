"""
Search API Query Package.

A pluggable search abstraction: indexes, processors and backend servers,
with queries routed through a pre-process / execute / post-process pipeline.
"""

__version__ = "1.0.0"
