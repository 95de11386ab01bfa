"""
Needs analytics

Derived views over call history: how often each need is reported, how
needs co-occur, overall crop health, a seasonal forecast and the daily
sentiment trend. Calls may be CallRecords or plain dicts.
"""

import math
import logging
from datetime import date, datetime, timedelta, timezone
from typing import Dict, List, Any, Iterable, Optional

from ..models.calls import NEED_NAMES, parse_timestamp
from ..models.farm import NEED_FIELDS

logger = logging.getLogger('canefarm.analytics.needs_analyzer')

CALLS_PER_PERIOD = {
    "week": 4,
    "month": 18,
    "quarter": 55,
}

# Empty days that may repeat the last daily sentiment
MAX_FILLED_GAP_DAYS = 5

# Sentiment change that counts as improving or declining
TREND_THRESHOLD = 0.05

_CORRELATION_BANDS = (
    (0.9, "Very strong"),
    (0.7, "Strong"),
    (0.5, "Moderate"),
    (0.3, "Weak"),
    (0.1, "Very weak"),
)


def _flag(call: Any, name: str) -> bool:
    if isinstance(call, dict):
        return bool(call.get(name, False))
    return bool(getattr(call, name, False))


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def need_frequencies(calls: Iterable[Any]) -> List[Dict[str, Any]]:
    """
    Count and rate of each need across calls

    Returns:
        One entry per need in NEED_FIELDS order: need, name, count, rate.
        Empty list when there are no calls.
    """
    calls = list(calls)
    if not calls:
        return []
    total = len(calls)
    result = []
    for name in NEED_FIELDS:
        count = sum(1 for call in calls if _flag(call, name))
        result.append({"need": name, "name": NEED_NAMES[name], "count": count, "rate": count / total})
    return result


def pearson(xs: List[float], ys: List[float]) -> float:
    """Pearson correlation; 0 when either series has no variance"""
    if len(xs) != len(ys):
        raise ValueError("Series must have the same length")
    n = len(xs)
    if n == 0:
        return 0.0
    mean_x = sum(xs) / n
    mean_y = sum(ys) / n
    covariance = variance_x = variance_y = 0.0
    for x, y in zip(xs, ys):
        dx = x - mean_x
        dy = y - mean_y
        covariance += dx * dy
        variance_x += dx * dx
        variance_y += dy * dy
    if variance_x == 0 or variance_y == 0:
        return 0.0
    return covariance / math.sqrt(variance_x * variance_y)


def correlation_matrix(calls: Iterable[Any]) -> Dict[str, Dict[str, float]]:
    """
    Pairwise correlation between need flags

    The diagonal is 1 whenever there is at least one call; an empty history
    gives an all-zero matrix.
    """
    calls = list(calls)
    matrix = {a: {b: 0.0 for b in NEED_FIELDS} for a in NEED_FIELDS}
    if not calls:
        return matrix

    vectors = {name: [1.0 if _flag(call, name) else 0.0 for call in calls] for name in NEED_FIELDS}
    for a in NEED_FIELDS:
        for b in NEED_FIELDS:
            matrix[a][b] = 1.0 if a == b else pearson(vectors[a], vectors[b])
    return matrix


def interpret_correlation(correlation: float) -> str:
    strength = abs(correlation)
    for threshold, label in _CORRELATION_BANDS:
        if strength >= threshold:
            return label
    return "No correlation"


def top_correlations(matrix: Dict[str, Dict[str, float]]) -> List[Dict[str, Any]]:
    """Distinct need pairs sorted by correlation strength, strongest first"""
    pairs = []
    for i, a in enumerate(NEED_FIELDS):
        for b in NEED_FIELDS[i + 1:]:
            r = matrix[a][b]
            pairs.append({
                "need_a": a,
                "need_b": b,
                "correlation": r,
                "interpretation": interpret_correlation(r),
            })
    pairs.sort(key=lambda p: abs(p["correlation"]), reverse=True)
    return pairs


def crop_health(calls: Iterable[Any]) -> Dict[str, Any]:
    """
    Crop health from every issue ever reported

    Issues accumulate across calls; 0 is healthy, 1 is warning, 2 or more
    is critical.
    """
    calls = list(calls)
    issues = [name for name in NEED_FIELDS if any(_flag(call, name) for call in calls)]
    if not issues:
        status = "healthy"
    elif len(issues) == 1:
        status = "warning"
    else:
        status = "critical"
    return {"status": status, "issues": issues}


def seasonal_factor(need: str, month: int) -> float:
    """
    Seasonal demand multiplier

    Args:
        need: Need field name (e.g. "needs_harvesting")
        month: Month index 0 (January) to 11 (December)
    """
    if not 0 <= month <= 11:
        raise ValueError(f"Month must be 0-11, got {month}")
    if need == "needs_fertilizer":
        return 1.2 if 2 <= month <= 4 else 1.15 if 9 <= month <= 11 else 1.0
    if need == "needs_seed_cane":
        return 1.3 if 1 <= month <= 3 else 1.1 if 8 <= month <= 10 else 0.9
    if need == "needs_harvesting":
        return 1.4 if 4 <= month <= 7 else 0.7
    if need == "needs_ploughing":
        return 1.3 if 7 <= month <= 9 else 1.2 if 2 <= month <= 4 else 0.9
    if need == "has_crop_issues":
        return 1.25 if 5 <= month <= 8 else 0.95
    if need == "needs_pesticide":
        return 1.35 if 4 <= month <= 9 else 0.8
    raise ValueError(f"Unknown need: {need}")


def _confidence(count: int) -> str:
    if count > 10:
        return "High"
    if count > 5:
        return "Medium"
    return "Low"


def forecast_needs(calls: Iterable[Any], period: str = "month", month: Optional[int] = None) -> List[Dict[str, Any]]:
    """
    Expected number of calls reporting each need over a coming period

    Args:
        calls: Call history
        period: "week", "month" or "quarter"
        month: Month index 0-11 for seasonality (default: current month)

    Returns:
        Frequency entries extended with prediction, predicted_count,
        confidence, seasonal_factor and growth_factor, highest predicted
        count first

    Raises:
        ValueError: If the period is unknown
    """
    if period not in CALLS_PER_PERIOD:
        raise ValueError(f"Unknown forecast period: {period}")
    if month is None:
        month = datetime.now().month - 1
    expected_calls = CALLS_PER_PERIOD[period]

    predictions = []
    for item in need_frequencies(calls):
        factor = seasonal_factor(item["need"], month)
        prediction = item["rate"] * factor
        predictions.append(dict(
            item,
            prediction=prediction,
            predicted_count=_round_half_up(prediction * expected_calls),
            confidence=_confidence(item["count"]),
            seasonal_factor=factor,
            growth_factor=factor - 1,
        ))
    predictions.sort(key=lambda p: p["predicted_count"], reverse=True)
    return predictions


def _field(call: Any, name: str, default=None):
    if isinstance(call, dict):
        return call.get(name, default)
    return getattr(call, name, default)


def _call_day(call: Any) -> date:
    stamp = _field(call, "created_at") or _field(call, "timestamp")
    return parse_timestamp(stamp).astimezone(timezone.utc).date()


def sentiment_trend(calls: Iterable[Any], days: int = 30, today: Optional[date] = None) -> Dict[str, Any]:
    """
    Daily average sentiment over the last `days` days

    Empty days repeat the last known average for up to MAX_FILLED_GAP_DAYS
    days, then stay None. Days before the first call in the window are None.

    Args:
        calls: Call history with sentiment and created_at
        days: Window length; the series has days + 1 points ending today
        today: Last day of the window (default: current UTC date)

    Returns:
        Dict with series (date, sentiment, calls), trend (last minus first
        known point), direction and average over known points

    Raises:
        ValueError: If days is not positive
    """
    if days < 1:
        raise ValueError(f"days must be positive, got {days}")
    calls = list(calls)
    if today is None:
        today = datetime.now(timezone.utc).date()
    start = today - timedelta(days=days)

    by_day: Dict[date, List[float]] = {}
    for call in calls:
        day = _call_day(call)
        if start <= day <= today:
            by_day.setdefault(day, []).append(float(_field(call, "sentiment", 0.0)))

    series = []
    if calls:
        last_known = None
        gap = 0
        for offset in range(days + 1):
            day = start + timedelta(days=offset)
            scores = by_day.get(day, [])
            if scores:
                value = round(sum(scores) / len(scores), 2)
                last_known = value
                gap = 0
            else:
                value = last_known if gap < MAX_FILLED_GAP_DAYS else None
                gap += 1
            series.append({"date": day.isoformat(), "sentiment": value, "calls": len(scores)})

    known = [point["sentiment"] for point in series if point["sentiment"] is not None]
    trend = known[-1] - known[0] if len(known) >= 2 else 0.0
    if trend > TREND_THRESHOLD:
        direction = "improving"
    elif trend < -TREND_THRESHOLD:
        direction = "declining"
    else:
        direction = "stable"
    return {
        "days": days,
        "series": series,
        "trend": trend,
        "direction": direction,
        "average": sum(known) / len(known) if known else 0.0,
    }


def needs_report(calls: Iterable[Any], period: str = "month", month: Optional[int] = None,
                 sentiment_days: int = 30, today: Optional[date] = None) -> Dict[str, Any]:
    """All analytics for a call history in one dict"""
    calls = list(calls)
    matrix = correlation_matrix(calls)
    report = {
        "total_calls": len(calls),
        "frequencies": need_frequencies(calls),
        "correlation_matrix": matrix,
        "top_correlations": top_correlations(matrix),
        "crop_health": crop_health(calls),
        "forecast": forecast_needs(calls, period, month),
        "sentiment": sentiment_trend(calls, sentiment_days, today),
    }
    logger.debug("Needs report over %d calls: health=%s", len(calls), report["crop_health"]["status"])
    return report
