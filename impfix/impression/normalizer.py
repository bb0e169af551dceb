"""Character-level cleanup for text scraped out of radiology reports.

Dictation systems and RIS exports leave behind control bytes, symbols and
other encoding artifacts that corrupt downstream display. The cleanup keeps
letters, digits and punctuation (curly quotes included) and turns stray
whitespace into spaces.
"""

import re
import unicodedata

# Always kept, on top of letters/digits/punctuation
_EXTRA_ALLOWED = {" ", "-", "/", "'"}

_MULTI_SPACE = re.compile(r" {2,}")


def _is_allowed(ch: str) -> bool:
    if ch in _EXTRA_ALLOWED:
        return True
    category = unicodedata.category(ch)
    return category[0] in ("L", "P") or category == "Nd"


def normalize(text: str | None) -> str:
    """Strip non-printable characters, collapse spaces and trim.

    Always returns a string; ``None`` and empty input give ``""``.
    """
    if not text:
        return ""

    out = []
    for ch in text:
        if _is_allowed(ch):
            out.append(ch)
        elif ch.isspace() or unicodedata.category(ch) == "Cc":
            out.append(" ")
        # Anything else (symbols, format characters, private-use) is dropped

    return _MULTI_SPACE.sub(" ", "".join(out)).strip()
