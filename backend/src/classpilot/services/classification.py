"""Infer an activity type and a requested question count from a free-text brief.

Kept apart from the gateways so a trained classifier can replace the keyword rules.
"""

import re
from collections.abc import Callable

from classpilot.schemas.activity import ActivityType

ActivityTypeClassifier = Callable[[str], ActivityType]

# Checked in order; the first matching group wins
TYPE_KEYWORDS: list[tuple[ActivityType, tuple[str, ...]]] = [
    ("quiz", ("quiz", "questionário", "múltipla escolha")),
    ("project", ("projeto", "trabalho", "grupo")),
    ("exam", ("prova", "exame", "avaliação")),
]

_COUNT_PATTERN = re.compile(r"(\d{1,2})\s*(?:quest(?:ões|oes|ão|ao|ions?)|perguntas?|items?|itens)", re.IGNORECASE)


def infer_activity_type(brief: str) -> ActivityType:
    text = brief.lower()
    for activity_type, keywords in TYPE_KEYWORDS:
        if any(keyword in text for keyword in keywords):
            return activity_type
    return "assignment"


def infer_question_count(brief: str) -> int | None:
    match = _COUNT_PATTERN.search(brief)
    if match is None:
        return None
    count = int(match.group(1))
    return count or None
