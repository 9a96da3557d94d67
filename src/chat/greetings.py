"""Greeting detection and canned greeting replies.

Greetings skip embedding and retrieval. Patterns are anchored at the
start of the query, so a greeting in the middle of a sentence is treated
as a normal question.
"""

from __future__ import annotations

import random
import re

GREETING_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"^(hi|hello|hey|good morning|good afternoon|good evening|greetings)(\s|$)"),
    re.compile(r"^(how are you|what's up|wassup|sup)(\?|\s|$)"),
    re.compile(r"^(hola|bonjour|hallo|ciao)(\s|$)"),
)

GREETING_RESPONSES: tuple[str, ...] = (
    "👋 Hello! How can I assist you today?",
    "Hi there! 😊 What can I help you with?",
    "👋 Hey! Ready to help you with any questions!",
    "Hello! 🌟 How may I be of assistance?",
    "Hi! 😃 Looking forward to helping you today!",
)


def is_greeting(query: str) -> bool:
    """Return True if *query* opens with one of the known greetings."""
    normalized = query.strip().lower()
    return any(pattern.search(normalized) for pattern in GREETING_PATTERNS)


def pick_greeting(rng: random.Random) -> str:
    """Pick a greeting reply uniformly at random."""
    return rng.choice(GREETING_RESPONSES)
