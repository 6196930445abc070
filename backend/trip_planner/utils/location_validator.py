"""
Location validation

Rejects vague or placeholder place names ("near the hotel", "附近", a bare
"museum") so that only landmark-grade locations reach the final plan.
Rules are plain data: add a LocationRule or a generic term to extend them.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Iterable

from trip_planner.core.logging import setup_logger

logger = setup_logger(__name__)

MIN_LOCATION_LENGTH = 3


@dataclass(frozen=True)
class LocationRule:
    name: str
    pattern: re.Pattern[str]

    def matches(self, candidate: str) -> bool:
        return self.pattern.search(candidate) is not None


def _rule(name: str, pattern: str) -> LocationRule:
    return LocationRule(name=name, pattern=re.compile(pattern, re.IGNORECASE))


# Qualifiers that turn a bare "downtown" into a concrete address
_DOWNTOWN_QUALIFIERS = (
    r"street|st\.?|road|rd\.?|avenue|ave\.?|boulevard|blvd|lane|plaza|square|"
    r"building|tower|mall|centre|center"
)

INVALID_LOCATION_RULES: tuple[LocationRule, ...] = (
    # near the hotel
    _rule("near_hotel", r"酒店附近"),
    _rule("near_hotel", r"\bnear (?:the |your |our )?(?:hotel|accommodation|lodging)\b"),
    # inside the attraction area
    _rule("inside_attraction", r"景区内"),
    _rule("inside_attraction", r"\b(?:inside|within|in) the (?:scenic|attraction|tourist) (?:area|spot|zone)\b"),
    # bare downtown, allowed when followed by a concrete street/plaza/building
    _rule("bare_downtown", r"市中心(?!.*路|.*街|.*广场|.*大厦|.*商场)"),
    _rule("bare_downtown", rf"\b(?:downtown|city cent(?:re|er))\b(?!.*\b(?:{_DOWNTOWN_QUALIFIERS})\b)"),
    # local / nearby / surrounding
    _rule("local_area", r"当地"),
    _rule("local_area", r"\blocal area\b"),
    _rule("nearby", r"附近"),
    _rule("nearby", r"\bnearby\b|\bnear here\b|\baround here\b"),
    _rule("surrounding", r"周边"),
    _rule("surrounding", r"\bsurrounding(?:s| area)?\b"),
    # see accommodation info below
    _rule("see_below", r"见下方"),
    _rule("see_below", r"\bsee (?:the )?(?:accommodation |hotel )?(?:info(?:rmation)?|details?) below\b"),
    # destination
    _rule("destination", r"目的地"),
    _rule("destination", r"\bdestination\b"),
    # airport / station vicinity
    _rule("airport_vicinity", r"机场附近"),
    _rule("airport_vicinity", r"\b(?:near (?:the )?airport|airport (?:vicinity|area))\b"),
    _rule("station_vicinity", r"火车站附近"),
    _rule("station_vicinity", r"\b(?:near (?:the )?(?:train |railway )?station|station (?:vicinity|area))\b"),
    # pending / unknown addresses
    _rule("address_pending", r"待定|地址不详"),
    _rule("address_pending", r"\b(?:tbd|tba|to be (?:determined|confirmed|announced)|address (?:pending|unknown))\b"),
    # specific / detailed address placeholders
    _rule("address_placeholder", r"具体地址|详细地址"),
    _rule("address_placeholder", r"\b(?:specific|detailed|exact) address\b"),
)

# Generic nouns that are invalid when they make up the whole location
GENERIC_LOCATION_TERMS: frozenset[str] = frozenset(
    {
        "餐厅", "酒店", "商场", "公园", "景点", "景区", "博物馆", "广场",
        "车站", "火车站", "机场", "码头", "港口", "市场", "超市", "银行",
        "restaurant", "hotel", "mall", "shopping mall", "park", "attraction",
        "museum", "plaza", "square", "station", "train station", "airport",
        "market", "supermarket", "bank", "pier", "port", "cafe", "bar",
    }
)

_LEADING_ARTICLE = re.compile(r"^(?:the|a|an)\s+", re.IGNORECASE)


def _rejection_reason(candidate: str) -> str | None:
    if len(candidate) < MIN_LOCATION_LENGTH:
        return "too_short"
    for rule in INVALID_LOCATION_RULES:
        if rule.matches(candidate):
            return rule.name
    bare = _LEADING_ARTICLE.sub("", candidate).strip().lower()
    if bare in GENERIC_LOCATION_TERMS:
        return "generic_term"
    return None


def is_valid_location(candidate: Any) -> bool:
    """Return True when `candidate` is a concrete, resolvable-looking place name."""
    if not isinstance(candidate, str):
        return False
    return _rejection_reason(candidate.strip()) is None


def clean_and_validate(candidate: Any) -> str | None:
    """Trim `candidate` and return it, or None when it is not a valid location."""
    if not isinstance(candidate, str):
        return None
    cleaned = candidate.strip()
    reason = _rejection_reason(cleaned)
    if reason is None:
        return cleaned
    logger.debug(f"[location_validator] Rejected '{cleaned}' ({reason})")
    return None


_LEFTOVER_SEPARATORS = re.compile(r"[\s,，、.。:：;；\-]+")
_LEFTOVER_ARTICLE = re.compile(r"^(?:the|a|an)\b\s*", re.IGNORECASE)


def strip_vague_phrases(candidate: Any) -> str:
    """
    Remove every vague-rule match from `candidate`, e.g. "上海周边" -> "上海",
    "Shanghai surroundings" -> "Shanghai". Returns "" when nothing concrete is left.
    """
    if not isinstance(candidate, str):
        return ""
    text = candidate
    for rule in INVALID_LOCATION_RULES:
        text = rule.pattern.sub(" ", text)
    text = _LEFTOVER_SEPARATORS.sub(" ", text).strip()
    return _LEFTOVER_ARTICLE.sub("", text).strip()


def partition_locations(locations: Iterable[Any]) -> tuple[list[str], list[Any]]:
    """Split locations into (valid, invalid), preserving order."""
    valid: list[str] = []
    invalid: list[Any] = []
    for location in locations:
        if is_valid_location(location):
            valid.append(location.strip())
        else:
            invalid.append(location)
    return valid, invalid


def validation_report(locations: Iterable[Any]) -> str:
    valid, invalid = partition_locations(locations)
    lines = ["Location validation report:", f"  valid ({len(valid)}):"]
    lines.extend(f"    - {loc}" for loc in valid)
    if invalid:
        lines.append(f"  invalid ({len(invalid)}):")
        lines.extend(f"    - {loc}" for loc in invalid)
    return "\n".join(lines)


__all__ = [
    "LocationRule",
    "INVALID_LOCATION_RULES",
    "GENERIC_LOCATION_TERMS",
    "is_valid_location",
    "clean_and_validate",
    "strip_vague_phrases",
    "partition_locations",
    "validation_report",
]
