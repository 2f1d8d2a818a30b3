"""
splitstage: detect commit boundaries in uncommitted changes and stage
them one focused commit at a time.
"""

__version__ = "0.1.0"
