"""Locate and clean the IMPRESSION section of an unstructured report.

The report is a dictation transcript, not a structured document, so the
section boundary is found heuristically: everything after the first
IMPRESSION token up to the next line that opens with a known section header.
Reports that don't fit degrade to "no impression found".
"""

import datetime
import re
from dataclasses import dataclass

from impfix.impression.normalizer import normalize
from impfix.impression.reflow import reflow_numbered_items

# Headers that end the IMPRESSION section when they open a line
STOP_HEADERS = (
    "TECHNIQUE",
    "FINDINGS",
    "CLINICAL HISTORY",
    "COMPARISON",
    "EXAM",
    "PROCEDURE",
    "INDICATION",
    "CONCLUSION",
    "RECOMMENDATION",
    "SIGNATURE",
    "ELECTRONICALLY SIGNED",
)

_IMPRESSION_RE = re.compile(
    r"IMPRESSION[: \t]*(.*?)"
    r"(?=\n\s*(?:" + "|".join(re.escape(h) for h in STOP_HEADERS) + r")[ \t]*(?::|\r?\n|\Z)|\Z)",
    re.IGNORECASE | re.DOTALL,
)

_WHITESPACE_RUN = re.compile(r"[\r\n\t ]+")


@dataclass(frozen=True)
class ExtractedImpression:
    """Canonical impression text; ``empty`` when nothing usable was found."""
    text: str = ""

    @property
    def empty(self) -> bool:
        return not self.text


@dataclass(frozen=True)
class Report:
    """A report as received from the viewer: never modified by the engine."""
    text: str
    study_description: str | None = None
    comparison_date: datetime.date | None = None


def extract_impression(raw_text: str | None) -> ExtractedImpression:
    """Return the cleaned IMPRESSION section of ``raw_text``.

    Numbered items ("1. ... 2. ...") come back one per line.
    """
    if not raw_text or not raw_text.strip():
        return ExtractedImpression()
    if "impression" not in raw_text.lower():
        return ExtractedImpression()

    m = _IMPRESSION_RE.search(raw_text)
    if not m:
        return ExtractedImpression()

    content = m.group(1).strip()
    if not content:
        return ExtractedImpression()

    content = _WHITESPACE_RUN.sub(" ", content).strip()
    content = normalize(content)
    content = reflow_numbered_items(content)
    return ExtractedImpression(text=content)
