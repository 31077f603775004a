"""
Review backends: the collaborator contract and its HTTP and in-process
implementations.
"""

from trend_curator.client.http import HttpReviewBackend
from trend_curator.client.interfaces import ReviewBackend, Uploader
from trend_curator.client.local import LocalReviewBackend

__all__ = [
    "ReviewBackend",
    "Uploader",
    "HttpReviewBackend",
    "LocalReviewBackend",
]
