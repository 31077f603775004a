"""
REST API for Trend Curator.

Exposes processing status, signals and trends per project.
"""

__version__ = "0.1.0"
