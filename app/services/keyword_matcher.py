"""
Keyword matching rules.

A keyword matches a message when any of these succeeds, checked in order:

1. substring containment of the lowercased keyword in the lowercased text;
2. a whole-word, case-insensitive regular expression match;
3. for multi-word keywords, every word appears in the text on its own
   (substring or whole word), in any order and not necessarily adjacent.

Containment comes first, so "urgent" matches "urgently rising" even though
the whole-word rule would not. "urgency" does not contain "urgent" and never
matches.
This is the behavior users have today; narrowing it is a product decision.
"""

import re
from typing import Iterable, List

MAX_KEYWORD_LENGTH = 100


def normalize_keyword(keyword: str) -> str:
    return keyword.strip().lower()


def normalize_keywords(keywords: Iterable[str]) -> List[str]:
    """Trim keywords and drop empties and case-insensitive duplicates, keeping first spelling"""
    seen = set()
    result = []
    for keyword in keywords:
        cleaned = keyword.strip()
        folded = cleaned.casefold()
        if not cleaned or folded in seen:
            continue
        seen.add(folded)
        result.append(cleaned)
    return result


def _word_pattern(word: str) -> re.Pattern:
    return re.compile(rf"\b{re.escape(word)}\b", re.IGNORECASE)


def _contains_word(text: str, word: str) -> bool:
    return word in text or _word_pattern(word).search(text) is not None


def is_keyword_match(message_text: str, keyword: str) -> bool:
    """Check whether keyword matches message_text (expected to be lowercased already)"""
    normalized_keyword = normalize_keyword(keyword)
    if not normalized_keyword:
        return False

    if normalized_keyword in message_text:
        return True

    if _word_pattern(normalized_keyword).search(message_text):
        return True

    words = normalized_keyword.split()
    if len(words) > 1 and all(_contains_word(message_text, word) for word in words):
        return True

    return False


def find_matching_keywords(text: str, keywords: Iterable[str]) -> List[str]:
    """Return every keyword (original casing) that matches text"""
    lowered = text.lower()
    return [keyword for keyword in keywords if is_keyword_match(lowered, keyword)]
