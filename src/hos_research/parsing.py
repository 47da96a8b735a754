"""Pull structured fields out of a free-text analyst reply.

Extraction is best effort. When a section cannot be found the result falls back
to fixed placeholder lists instead of failing, so callers always receive a
complete ``AnalysisResult``.
"""

from __future__ import annotations

import re
from typing import List, Optional, Sequence

from hos_research.models import AnalysisResult, TechnicalIndicators


DEFAULT_RECOMMENDATION = "hold"
DEFAULT_RISKS = ["Market volatility", "Regulatory changes", "Competition"]
DEFAULT_OPPORTUNITIES = ["Market expansion", "Innovation", "Strategic partnerships"]
MAX_BULLETS = 3

_RECOMMENDATION_RE = re.compile(r"Recommendation[*_]*:[*_\s]*(BUY|HOLD|SELL)\b", re.IGNORECASE)
_TARGET_PRICE_RE = re.compile(
    r"Target\s*Price[*_]*:[*_\s]*\$?\s*(\d{1,3}(?:,\d{3})+(?:\.\d+)?|\d+(?:\.\d+)?)",
    re.IGNORECASE,
)

# Optional heading decoration: markdown hashes or list numbering, emphasis, then
# an item count and "key" as in "**3 Key Risks:**".
_HEADING_PREFIX = r"^[ \t]*(?:\#+[ \t]*|\d+[.)][ \t]*|[-•*][ \t]*)?[*_]*(?:\d+[ \t]+)?(?:key[ \t]+)?"
_STOP_PREFIX = r"^[ \t]*(?:\#+[ \t]*|\d+[.)][ \t]*)?[*_]*(?:\d+[ \t]+)?(?:key[ \t]+)?"
# A heading ends the line, or a short phrase such as "Factors" or "to Consider"
# runs up to the colon.
_HEADING_SUFFIX = r"\b(?:[*_]*[ \t]*$|[^\n:]{0,40}:)"
_BULLET_START_RE = re.compile(r"^[-•*\d.]")
_BULLET_MARKER_RE = re.compile(r"^(?:[-•*]+|\d+[.)]?|\.)\s*")

RISK_HEADING = r"risks?"
OPPORTUNITY_HEADING = r"opportunit(?:y|ies)"
RISK_STOPS = (OPPORTUNITY_HEADING, r"technical")
OPPORTUNITY_STOPS = (r"technical", r"recommendation")


def extract_recommendation(text: str) -> str:
    match = _RECOMMENDATION_RE.search(text or "")
    return match.group(1).lower() if match else DEFAULT_RECOMMENDATION


def extract_target_price(text: str) -> Optional[float]:
    match = _TARGET_PRICE_RE.search(text or "")
    if not match:
        return None
    return float(match.group(1).replace(",", ""))


def _section_body(text: str, heading: str, stops: Sequence[str]) -> Optional[str]:
    start_re = re.compile(
        _HEADING_PREFIX + heading + _HEADING_SUFFIX,
        re.IGNORECASE | re.MULTILINE,
    )
    start = start_re.search(text)
    if not start:
        return None
    body = text[start.end():]
    if stops:
        stop_re = re.compile(
            _STOP_PREFIX + "(?:" + "|".join(stops) + r")\b",
            re.IGNORECASE | re.MULTILINE,
        )
        # Skip the remainder of the heading line itself.
        newline = body.find("\n")
        offset = 0 if newline < 0 else newline + 1
        stop = stop_re.search(body, offset)
        if stop:
            body = body[: stop.start()]
    return body


def extract_section_bullets(
    text: str,
    heading: str,
    stops: Sequence[str] = (),
    limit: int = MAX_BULLETS,
) -> List[str]:
    """Return up to ``limit`` bullet lines under ``heading``, markers stripped.

    The section runs from the heading to the first stop heading or the end of
    the text. Lines beginning with ``-``, ``•``, ``*``, a digit or a dot count
    as bullets.
    """
    body = _section_body(text or "", heading, stops)
    if body is None:
        return []

    out: List[str] = []
    for raw in body.splitlines():
        line = raw.strip()
        if not line or not _BULLET_START_RE.match(line):
            continue
        cleaned = _BULLET_MARKER_RE.sub("", line, count=1).strip()
        if not cleaned:
            continue
        out.append(cleaned)
        if len(out) >= limit:
            break
    return out


def extract_risks(text: str) -> List[str]:
    return extract_section_bullets(text, RISK_HEADING, RISK_STOPS) or list(DEFAULT_RISKS)


def extract_opportunities(text: str) -> List[str]:
    return extract_section_bullets(text, OPPORTUNITY_HEADING, OPPORTUNITY_STOPS) or list(DEFAULT_OPPORTUNITIES)


def parse_analysis(
    symbol: str,
    text: str,
    indicators: TechnicalIndicators,
    generated_at: int,
) -> AnalysisResult:
    return AnalysisResult(
        symbol=symbol,
        analysis=text,
        recommendation=extract_recommendation(text),
        target_price=extract_target_price(text),
        risks=extract_risks(text),
        opportunities=extract_opportunities(text),
        technical_indicators=indicators,
        generated_at=generated_at,
    )
