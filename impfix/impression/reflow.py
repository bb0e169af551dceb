"""Put sequentially numbered impression items on their own lines."""

import re

_STARTS_WITH_ONE = re.compile(r"^\s*1\.")


def _glued_to_number(text: str, i: int) -> bool:
    return i > 0 and (text[i - 1].isdigit() or text[i - 1] == ".")


def reflow_numbered_items(text: str) -> str:
    """Insert a line break before each expected list marker ("2.", "3.", ...).

    Only runs when the text starts with "1.". Markers are matched strictly in
    sequence and must be followed by whitespace, a letter or the end of the
    text, so measurements like "2.5 cm" are left alone.

    Unlike a plain substring scan, a marker directly after a digit or a "."
    is not a marker: "rib 12." is not item 2, and in "measures 2.2." the
    second "2." belongs to the number. Without this the result could change
    when reflowed again.
    """
    if not text or not _STARTS_WITH_ONE.match(text):
        return text

    out: list[str] = []
    expected = 1
    i = 0
    length = len(text)

    while i < length:
        marker = f"{expected}."
        end = i + len(marker)
        if text.startswith(marker, i) and not _glued_to_number(text, i):
            if end >= length or text[end].isspace() or text[end].isalpha():
                if expected > 1:
                    # Drop whitespace (including a previous break) before the marker
                    while out and out[-1].isspace():
                        out.pop()
                    out.append("\n")
                out.append(marker)
                i = end
                expected += 1
                continue

        out.append(text[i])
        i += 1

    return "".join(out)
