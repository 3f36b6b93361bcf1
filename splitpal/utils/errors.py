"""
User-facing error messages and store-error mapping.
"""

ERROR_MESSAGES = {
    'INVALID_AMOUNT': '❌ Please enter a valid amount (e.g. 25 or 12.50)',
    'NO_PARTICIPANTS': '❌ Tag people to split with (@username)',
    'USER_NOT_IN_GROUP': '❌ Please ask them to send a message in this group first',
    'DATABASE_ERROR': '❌ Something went wrong. Please try again.',
    'GROUP_ONLY': '⚠️ This command only works in group chats. Add me to a group first!',
    'PRIVATE_ONLY': '⚠️ This only works in a private chat. DM me directly!',
    'NAME_IN_QUOTES': '❌ Template name must be in quotes!',
}

# PostgreSQL SQLSTATE codes surfaced by psycopg2 as exc.pgcode
PG_ERROR_CODES = {
    '23505': '❌ This would create a duplicate entry.',
    '23503': '❌ Referenced data does not exist.',
    '23502': '❌ Required information is missing.',
    '40001': '⚠️ Database is busy, please try again.',
    '40P01': '⚠️ Operation conflict detected, please try again.',
}


def user_message_for(exc: Exception) -> str:
    """Map a store-layer exception to the single message shown to the user."""
    code = getattr(exc, 'pgcode', None)
    if code in PG_ERROR_CODES:
        return PG_ERROR_CODES[code]
    return ERROR_MESSAGES['DATABASE_ERROR']
