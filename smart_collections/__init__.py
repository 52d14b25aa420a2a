"""
Smart collection suggestions for photo galleries.

Groups a gallery's uncategorized photos by capture date, filename pattern and
camera, and commits accepted groupings as collections.
"""

__version__ = "0.1.0"
