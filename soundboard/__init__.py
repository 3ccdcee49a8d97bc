"""
Soundboard Work - shared office music queue.
"""

__version__ = "1.0.0"
