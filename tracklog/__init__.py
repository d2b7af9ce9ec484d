"""
tracklog: a tiny beacon collector with a searchable log dashboard.
"""

__version__ = "0.1.0"
