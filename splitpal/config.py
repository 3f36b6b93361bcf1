"""
Configuration settings for SplitPal application.
"""

import os
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# ========================================
# DATABASE CONFIGURATION
# ========================================
DATABASE_URL = os.getenv('DATABASE_URL')
POSTGRES_HOST = os.getenv('POSTGRES_HOST', 'localhost')
POSTGRES_PORT = os.getenv('POSTGRES_PORT', '5432')
POSTGRES_DB = os.getenv('POSTGRES_DB', 'splitpal')
POSTGRES_USER = os.getenv('POSTGRES_USER')
POSTGRES_PASSWORD = os.getenv('POSTGRES_PASSWORD')

# ========================================
# AI CONFIGURATION
# ========================================
# Optional: only used to categorize descriptions no keyword rule matches
GEMINI_API_KEY = os.getenv('GEMINI_API_KEY')
GEMINI_MODEL = os.getenv('GEMINI_MODEL', 'gemini-2.0-flash')

# ========================================
# TELEGRAM BOT CONFIGURATION
# ========================================
TELEGRAM_BOT_TOKEN = os.getenv('TELEGRAM_BOT_TOKEN')

# ========================================
# APPLICATION CONFIGURATION
# ========================================
DEBUG = os.getenv('DEBUG', 'False').lower() == 'true'
LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')

# ========================================
# VALIDATION
# ========================================
def validate_config():
    """Validate required configuration settings."""
    errors = []

    # Check database configuration
    if not DATABASE_URL and not all([POSTGRES_USER, POSTGRES_PASSWORD]):
        errors.append("Database configuration missing. Set DATABASE_URL or POSTGRES_* variables")

    # Check Telegram configuration
    if not TELEGRAM_BOT_TOKEN:
        errors.append("TELEGRAM_BOT_TOKEN is required for bot functionality")

    if LOG_LEVEL.upper() not in ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'):
        errors.append(f"LOG_LEVEL '{LOG_LEVEL}' is not a valid logging level")

    if errors:
        raise ValueError("Configuration errors:\n" + "\n".join(f"- {error}" for error in errors))

    return True
