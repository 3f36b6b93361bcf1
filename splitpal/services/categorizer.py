"""
Category suggestion for expense descriptions.
Keyword rules first, Google's Gemini AI as an optional fallback.
"""

import logging
from decimal import Decimal
from typing import Dict, List, Optional

import google.generativeai as genai

from .. import config

logger = logging.getLogger(__name__)

EXPENSE_CATEGORIES = [
    'Food & Dining',
    'Transportation',
    'Entertainment',
    'Shopping',
    'Bills & Utilities',
    'Travel',
    'Healthcare',
    'Education',
    'Other',
]

EMOJI_CATEGORIES: Dict[str, str] = {
    '🍕🍔🍟🌮🍜🍱🍝🥘🍳☕🍺🍷': 'Food & Dining',
    '🚗🚕🚙🚌🚇🛫⛽': 'Transportation',
    '🎬🎮🎯🎪🎭🎨🎵': 'Entertainment',
    '🛍👗👕👖👠💄': 'Shopping',
    '🏠💡💧📱💻🔌': 'Bills & Utilities',
    '🏨🏖✈🗺🎒': 'Travel',
    '💊💉🏥': 'Healthcare',
    '📚📖✏🎓': 'Education',
}

CATEGORY_KEYWORDS: Dict[str, List[str]] = {
    'Food & Dining': [
        'lunch', 'dinner', 'breakfast', 'food', 'meal', 'restaurant', 'cafe',
        'coffee', 'pizza', 'burger', 'sushi', 'drink', 'drinks', 'bar', 'groceries',
    ],
    'Transportation': ['uber', 'lyft', 'taxi', 'gas', 'fuel', 'parking', 'toll', 'bus', 'train', 'car'],
    'Entertainment': ['movie', 'concert', 'game', 'ticket', 'show', 'netflix', 'spotify', 'museum'],
    'Shopping': ['amazon', 'store', 'buy', 'purchase', 'clothes', 'shoes', 'gift'],
    'Bills & Utilities': ['rent', 'electricity', 'water', 'internet', 'phone', 'bill', 'utility'],
    'Travel': ['hotel', 'airbnb', 'booking', 'trip', 'vacation', 'travel', 'flight'],
    'Healthcare': ['doctor', 'medicine', 'pharmacy', 'hospital', 'clinic', 'health'],
    'Education': ['book', 'course', 'class', 'tuition', 'school', 'university'],
}

CATEGORY_PROMPT = '''
Pick the single best category for this shared expense: "{description}"{amount_hint}

Answer with exactly one of these category names and nothing else:
{categories}
'''


def match_category(name: str, allow_prefix: bool = True) -> Optional[str]:
    """
    Map a typed category name to one of EXPENSE_CATEGORIES.

    Matching ignores case. With allow_prefix, an unambiguous start of a
    name of at least three letters also matches ("food", "bills").
    """
    wanted = ' '.join((name or '').split()).lower()
    if not wanted:
        return None

    for category in EXPENSE_CATEGORIES:
        if wanted == category.lower():
            return category

    if allow_prefix and len(wanted) >= 3:
        candidates = [category for category in EXPENSE_CATEGORIES if category.lower().startswith(wanted)]
        if len(candidates) == 1:
            return candidates[0]
    return None


class CategorySuggester:
    """
    Suggests an expense category from its description.
    """

    def __init__(self, api_key: str = None, model_name: str = None):
        self.api_key = api_key if api_key is not None else config.GEMINI_API_KEY
        self.model = None

        if self.api_key:
            genai.configure(api_key=self.api_key)
            self.model = genai.GenerativeModel(model_name or config.GEMINI_MODEL)
            logger.info("Gemini category fallback enabled")

    def suggest(self, description: str, amount: Decimal = None) -> Optional[str]:
        """
        Suggest a category for a description.

        Returns:
            str: One of EXPENSE_CATEGORIES, or None when nothing fits
        """
        if not description:
            return None

        category = self._match_emoji(description) or self._match_keywords(description)
        if category or self.model is None:
            return category

        return self._ask_model(description, amount)

    def _match_emoji(self, description: str) -> Optional[str]:
        for emojis, category in EMOJI_CATEGORIES.items():
            if any(char in emojis for char in description):
                return category
        return None

    def _match_keywords(self, description: str) -> Optional[str]:
        lowered = description.lower()
        words = set(lowered.split())
        best_category, best_score = None, 0

        for category, keywords in CATEGORY_KEYWORDS.items():
            score = 0
            for keyword in keywords:
                if keyword in words:
                    score += 2
                elif keyword in lowered:
                    score += 1
            if score > best_score:
                best_category, best_score = category, score

        return best_category

    def _ask_model(self, description: str, amount: Decimal = None) -> Optional[str]:
        prompt = CATEGORY_PROMPT.format(
            description=description,
            amount_hint=f" (amount {amount})" if amount is not None else "",
            categories="\n".join(EXPENSE_CATEGORIES),
        )
        try:
            response = self.model.generate_content(prompt)
            answer = (response.text or '').strip().strip('`"\'.').strip()
        except Exception as e:
            logger.warning(f"Gemini categorization failed for '{description}': {e}")
            return None

        category = match_category(answer, allow_prefix=False)
        if category:
            return category

        logger.info(f"Discarding off-list category '{answer}' for '{description}'")
        return None


_categorizer: Optional[CategorySuggester] = None


def get_categorizer() -> CategorySuggester:
    """
    Get the global category suggester instance.
    """
    global _categorizer
    if _categorizer is None:
        _categorizer = CategorySuggester()
    return _categorizer
