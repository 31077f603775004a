"""
Trend Curator.

Turns imported signals into curated trends: gates review on the scoring
pipeline's processing status, serves Pending signals with ranked similar
candidates, and manages the trend lifecycle.
"""

__version__ = "0.1.0"
