"""
Call data models

A CallAnalysis is what the LLM extracts from a transcript; a CallRecord is
the persisted call with its analysis and farmer details.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Dict, Any, Optional

from .farm import NEED_FIELDS, as_bool

FARMING_CATEGORIES = (
    "Planting",
    "Irrigation",
    "Fertilization",
    "Pest Control",
    "Harvesting",
    "Post-Harvest",
)

# Display names for need flags
NEED_NAMES = {
    "needs_fertilizer": "Fertilizer",
    "needs_seed_cane": "Seed Cane",
    "needs_harvesting": "Harvesting",
    "needs_ploughing": "Ploughing",
    "has_crop_issues": "Crop Issues",
    "needs_pesticide": "Pesticide",
}

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def parse_timestamp(value: Optional[str]) -> datetime:
    """ISO-8601 string as an aware datetime; missing or unparseable values sort oldest"""
    if not value:
        return _EPOCH
    try:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return _EPOCH
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


FARMER_DETAIL_FIELDS = (
    "farmer_id",
    "farmer_name",
    "farm_size_acres",
    "location",
    "gender",
    "age",
    "preferred_language",
)


@dataclass
class CallAnalysis:
    """
    Structured analysis of a farmer call

    Attributes:
        summary: Short summary of the call
        categories: Subset of FARMING_CATEGORIES
        sentiment: Sentiment score in [-1, 1]
        needs: Need flags keyed by NEED_FIELDS
        resolved: Always False for fresh analyses
        follow_up_required: Whether the call needs a follow-up
        priority: 1 (low) to 3 (high)
    """
    summary: str
    categories: List[str]
    sentiment: float
    needs: Dict[str, bool] = field(default_factory=lambda: {n: False for n in NEED_FIELDS})
    resolved: bool = False
    follow_up_required: bool = False
    priority: int = 1
    token_usage: Dict[str, int] = field(default_factory=dict)
    provider: str = ""

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary (flat need flags, as stored on call records)"""
        result = {
            "summary": self.summary,
            "categories": list(self.categories),
            "sentiment": self.sentiment,
            "resolved": self.resolved,
            "follow_up_required": self.follow_up_required,
            "priority": self.priority,
        }
        result.update({name: bool(self.needs.get(name, False)) for name in NEED_FIELDS})
        return result


@dataclass
class CallRecord:
    """A persisted farmer call"""
    transcript: str
    summary: str
    categories: List[str]
    sentiment: float
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    created_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    needs_fertilizer: bool = False
    needs_seed_cane: bool = False
    needs_harvesting: bool = False
    needs_ploughing: bool = False
    has_crop_issues: bool = False
    needs_pesticide: bool = False
    resolved: bool = False
    follow_up_required: bool = False
    priority: int = 1
    farmer_id: Optional[str] = None
    farmer_name: Optional[str] = None
    farm_size_acres: Optional[float] = None
    location: Optional[str] = None
    gender: Optional[str] = None
    age: Optional[int] = None
    preferred_language: Optional[str] = None

    def needs(self) -> Dict[str, bool]:
        return {name: getattr(self, name) for name in NEED_FIELDS}

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        result = {
            "id": self.id,
            "created_at": self.created_at,
            "transcript": self.transcript,
            "summary": self.summary,
            "categories": list(self.categories),
            "sentiment": self.sentiment,
            "resolved": self.resolved,
            "follow_up_required": self.follow_up_required,
            "priority": self.priority,
        }
        result.update(self.needs())
        result.update({name: getattr(self, name) for name in FARMER_DETAIL_FIELDS})
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CallRecord":
        """
        Build a record from a stored or submitted dict

        Accepts the legacy farmer keys ("Farmer ID", "Farm Size", ...) used by
        older call exports.

        Raises:
            ValueError: If transcript, summary, categories or sentiment is missing
        """
        missing = [k for k in ("transcript", "summary", "categories", "sentiment")
                   if data.get(k) is None or data.get(k) == ""]
        if missing:
            raise ValueError(f"Missing required fields: {', '.join(missing)}")
        if not isinstance(data["categories"], (list, tuple)):
            raise ValueError("categories must be a list")
        try:
            sentiment = float(data["sentiment"])
        except (TypeError, ValueError):
            raise ValueError(f"sentiment must be a number, got {data['sentiment']!r}")

        kwargs = {
            "transcript": str(data["transcript"]),
            "summary": str(data["summary"]),
            "categories": list(data["categories"]),
            "sentiment": sentiment,
            "resolved": as_bool(data.get("resolved", False)),
            "follow_up_required": as_bool(data.get("follow_up_required", False)),
            "priority": int(data.get("priority", 1) or 1),
        }
        if data.get("id"):
            kwargs["id"] = str(data["id"])
        created = data.get("created_at") or data.get("timestamp")
        if created:
            kwargs["created_at"] = str(created)
        kwargs.update({name: as_bool(data.get(name, False)) for name in NEED_FIELDS})

        details = _farmer_details(data)
        kwargs.update(details)
        return cls(**kwargs)


_LEGACY_DETAIL_KEYS = {
    "farmer_id": ("farmer_id", "Farmer ID"),
    "farmer_name": ("farmer_name", "Farmer Name"),
    "farm_size_acres": ("farm_size_acres", "farm_size", "Farm Size", "Farm Size (Acres)"),
    "location": ("location", "Location"),
    "gender": ("gender", "Gender"),
    "age": ("age", "Age"),
    "preferred_language": ("preferred_language", "Preferred Language"),
}


def _farmer_details(data: Dict[str, Any]) -> Dict[str, Any]:
    details = {}
    for name, keys in _LEGACY_DETAIL_KEYS.items():
        for key in keys:
            value = data.get(key)
            if value not in (None, ""):
                details[name] = value
                break
    if "farm_size_acres" in details:
        try:
            details["farm_size_acres"] = float(details["farm_size_acres"])
        except (TypeError, ValueError):
            del details["farm_size_acres"]
    if "age" in details:
        try:
            details["age"] = int(details["age"])
        except (TypeError, ValueError):
            del details["age"]
    if "farmer_id" in details:
        details["farmer_id"] = str(details["farmer_id"])
    return details


@dataclass
class Resolution:
    """
    Record of how a call's issue was closed

    Attributes:
        call_id: Id of the resolved CallRecord
        resolved_by: Staff member who closed the issue
        issue_resolved: What was done
        date_resolved: ISO timestamp (defaults to now)
        farmer_confirmation: Whether the farmer confirmed the fix
        notes: Free-form notes
    """
    call_id: str
    resolved_by: str
    issue_resolved: str
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    date_resolved: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    farmer_confirmation: bool = False
    notes: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "call_id": self.call_id,
            "date_resolved": self.date_resolved,
            "resolved_by": self.resolved_by,
            "issue_resolved": self.issue_resolved,
            "farmer_confirmation": self.farmer_confirmation,
            "notes": self.notes,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Resolution":
        """
        Raises:
            ValueError: If call_id, resolved_by or issue_resolved is missing
        """
        for key in ("call_id", "resolved_by", "issue_resolved"):
            if not data.get(key):
                raise ValueError(f"Missing required field: {key}")

        kwargs = {
            "call_id": str(data["call_id"]),
            "resolved_by": str(data["resolved_by"]),
            "issue_resolved": str(data["issue_resolved"]),
            "farmer_confirmation": as_bool(data.get("farmer_confirmation", False)),
            "notes": data.get("notes") or None,
        }
        if data.get("id"):
            kwargs["id"] = str(data["id"])
        if data.get("date_resolved"):
            kwargs["date_resolved"] = str(data["date_resolved"])
        return cls(**kwargs)
