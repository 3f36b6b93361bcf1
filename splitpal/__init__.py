"""
SplitPal - Telegram bot for shared group expenses and personal spending.
"""

__version__ = "1.0.0"
