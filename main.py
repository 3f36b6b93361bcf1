#!/usr/bin/env python3
"""
SplitPal - Shared Expense Tracker
Main entry point for the application.
"""

from splitpal.bot.main import main

if __name__ == "__main__":
    main()
