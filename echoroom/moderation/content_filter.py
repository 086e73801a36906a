"""Bad-word detection and redaction for chat text.

One compiled, word-boundary-anchored pattern drives both detection and
redaction, so any message flagged as a violation is also persisted with
every offending term masked.
"""

from __future__ import annotations

import re
from typing import Iterable

MASK = "****"

# English and Spanish terms. Multi-word entries match as whole phrases.
DENYLIST: tuple[str, ...] = (
    "fuck", "shit", "bitch", "asshole", "bastard", "dick", "piss", "cunt",
    "crap", "slut", "whore", "fag", "nigger", "retard", "motherfucker", "cock",
    "fucker", "douche", "bollocks", "arsehole", "twat", "wanker", "suck my", "dickhead",
    "puta", "mierda", "idiot", "moron", "jackass", "dumbass", "prick", "skank",
    "cum", "shithead", "dildo", "bastardo", "imbécil", "coño", "chingada", "pendejo",
    "verga", "malparido", "zorra", "estúpido", "puta madre", "mierdoso", "tonto", "culero",
    "asshat", "nutsack", "buttfuck", "shitface", "cockhead", "fuckface", "fucktard", "cocksucker",
    "dickface", "cumdumpster", "fucknut", "asswipe", "crackhead", "tard", "hoe", "knobhead",
)


def compile_denylist(terms: Iterable[str]) -> re.Pattern[str]:
    """Build a single case-insensitive, whole-word alternation.

    Longer terms come first so "puta madre" wins over "puta".
    """
    ordered = sorted({t.lower() for t in terms if t.strip()}, key=len, reverse=True)
    if not ordered:
        return re.compile(r"(?!)")
    alternation = "|".join(re.escape(t) for t in ordered)
    return re.compile(rf"\b(?:{alternation})\b", re.IGNORECASE)


class ContentFilter:
    """Stateless profanity filter over message text."""

    def __init__(self, terms: Iterable[str] = DENYLIST, mask: str = MASK) -> None:
        self._pattern = compile_denylist(terms)
        self._mask = mask

    def contains_violation(self, text: str) -> bool:
        """True if any denylist term appears as a whole word."""
        if not text:
            return False
        return self._pattern.search(text) is not None

    def redact(self, text: str) -> str:
        """Replace every whole-word denylist term with the mask."""
        if not text:
            return text
        return self._pattern.sub(self._mask, text)

    def find_violations(self, text: str) -> list[str]:
        """Return the offending terms (lowercased) in order of appearance."""
        if not text:
            return []
        return [m.group(0).lower() for m in self._pattern.finditer(text)]


default_filter = ContentFilter()
