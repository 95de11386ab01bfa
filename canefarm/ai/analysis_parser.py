"""
Analysis parser - converts LLM JSON output into CallAnalysis objects
"""

import logging
from typing import Dict, Any

from ..models.calls import CallAnalysis, FARMING_CATEGORIES
from ..models.farm import NEED_FIELDS, as_bool

logger = logging.getLogger('canefarm.ai.analysis_parser')

# Any of these in a transcript marks the call as needing fertilizer
FERTILIZER_KEYWORDS = (
    'fertilizer', 'fertilizers', 'fertilising', 'fertilizing', 'fertilise', 'fertilize',
    'nutrients', 'nutrient', 'npk', 'nitrogen', 'phosphorus', 'potassium',
    'manure', 'compost', 'feed', 'feeding', 'nourish', 'soil', 'growth', 'grow',
    'organic matter', 'ammonia', 'urea', 'chemicals', 'chemical'
)

MIN_PRIORITY = 1
MAX_PRIORITY = 3


def mentions_fertilizer(transcript: str) -> bool:
    """Case-insensitive substring match against FERTILIZER_KEYWORDS"""
    lowered = transcript.lower()
    return any(keyword in lowered for keyword in FERTILIZER_KEYWORDS)


def _priority(value: Any) -> int:
    try:
        priority = int(value)
    except (TypeError, ValueError):
        return MIN_PRIORITY
    return max(MIN_PRIORITY, min(MAX_PRIORITY, priority))


def parse_analysis(raw: Dict[str, Any], transcript: str = "") -> CallAnalysis:
    """
    Validate an LLM analysis and fill in defaults

    Args:
        raw: Parsed JSON object from the model
        transcript: The analyzed transcript (used for the fertilizer keyword check)

    Returns:
        CallAnalysis

    Raises:
        ValueError: If summary is missing, categories is not a list of known
                    categories, or sentiment is not a number in [-1, 1]
    """
    if not isinstance(raw, dict):
        raise ValueError(f"Analysis must be an object, got {type(raw).__name__}")

    summary = raw.get("summary")
    if not summary or not isinstance(summary, str):
        raise ValueError("Analysis is missing a summary")

    categories = raw.get("categories")
    if not isinstance(categories, list):
        raise ValueError("Analysis categories must be a list")
    invalid = [c for c in categories if c not in FARMING_CATEGORIES]
    if invalid:
        raise ValueError(f"Invalid categories: {', '.join(map(str, invalid))}")

    sentiment = raw.get("sentiment")
    if isinstance(sentiment, bool) or not isinstance(sentiment, (int, float)):
        raise ValueError(f"Sentiment must be a number, got {sentiment!r}")
    if not -1.0 <= sentiment <= 1.0:
        raise ValueError(f"Sentiment {sentiment} is outside [-1, 1]")

    needs = {name: as_bool(raw.get(name, False)) for name in NEED_FIELDS}
    if transcript and not needs["needs_fertilizer"] and mentions_fertilizer(transcript):
        logger.debug("Fertilizer keywords found, forcing needs_fertilizer")
        needs["needs_fertilizer"] = True

    analysis = CallAnalysis(
        summary=summary.strip(),
        categories=list(dict.fromkeys(categories)),
        sentiment=float(sentiment),
        needs=needs,
        resolved=False,
        follow_up_required=as_bool(raw.get("follow_up_required", False)),
        priority=_priority(raw.get("priority", MIN_PRIORITY)),
        token_usage=dict(raw.get("__token_usage") or {}),
    )
    logger.debug("Parsed analysis: categories=%s sentiment=%.2f needs=%s",
                 analysis.categories, analysis.sentiment,
                 [name for name, flag in needs.items() if flag])
    return analysis
