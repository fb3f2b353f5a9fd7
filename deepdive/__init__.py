"""
DeepDive: turn a short topic into narrated podcast episodes.
"""

__version__ = "0.1.0"
