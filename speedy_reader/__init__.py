"""
Speedy Reader

A terminal feed reader with on-demand AI summaries and bookmarking.
Provides feed refresh, article management, and the interactive session engine.
"""

__version__ = "1.0.0"
