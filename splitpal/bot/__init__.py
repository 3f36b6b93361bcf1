"""
Bot package for SplitPal Telegram bot.
"""

from .main import SplitPalBot, main

__all__ = ['SplitPalBot', 'main']
