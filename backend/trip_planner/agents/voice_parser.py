"""
Voice transcript -> PartialTripRequest.

parse_basic is a local keyword heuristic for Chinese and English phrasing.
parse asks the chat backend for a structured extraction when one is
configured and falls back to parse_basic on any failure.
"""

from __future__ import annotations

import asyncio
import json
import re
from typing import Any

from langchain_core.prompts import ChatPromptTemplate

from trip_planner.agents.itinerary_agent import create_llm
from trip_planner.core.config import LLM_API_KEY, LLM_TIMEOUT_SECONDS
from trip_planner.core.logging import setup_logger
from trip_planner.models.trip import TRANSPORT_MODES, PartialTripRequest
from trip_planner.utils.coerce import to_float, to_int, to_text, to_text_list

logger = setup_logger(__name__)

AGENT_LABEL = "voice"

DEFAULT_BUDGET = 5000
DEFAULT_TRAVELERS = 2
MAX_BUDGET = 100_000_000
MAX_TRAVELERS = 999

_ORIGIN_PATTERNS = (
    re.compile(r"从(.+?)(?:出发|到|去)"),
    re.compile(r"(.+?)出发"),
    re.compile(r"\bfrom\s+([A-Za-z][A-Za-z\s]*?)(?=\s+(?:to|for|by|with|on|in)\b|[,.!]|$)", re.IGNORECASE),
)
_DESTINATION_PATTERNS = (
    re.compile(r"去(.+?)(?=玩|旅游|旅行|度假|看看|\d|[，,。.！!\s]|$)"),
    re.compile(r"到(.+?)(?=玩|旅游|旅行|度假|看看|\d|[，,。.！!\s]|$)"),
    re.compile(r"\bto\s+([A-Z][A-Za-z]*(?:\s+[A-Z][A-Za-z]*)*)"),
)

_BUDGET_PATTERNS = (
    re.compile(r"预算\s*(\d+(?:\.\d+)?)\s*(万|千|元|块)"),
    re.compile(r"budget\s*(?:of|is|:)?\s*[$¥€£]?\s*(\d+(?:\.\d+)?)\s*(k|thousand)?", re.IGNORECASE),
)
_BUDGET_MULTIPLIERS = {"万": 10000, "千": 1000, "k": 1000, "thousand": 1000}

_TRAVELER_PATTERNS = (
    re.compile(r"(\d+)\s*(?:个)?人"),
    re.compile(r"(\d+)\s*(?:people|persons|travell?ers|adults)\b", re.IGNORECASE),
)

# Ordered: first matching mode wins
TRANSPORT_KEYWORDS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("flight", ("飞机", "航班", "flight", "fly", "flying", "plane")),
    ("train", ("火车", "高铁", "动车", "train", "rail")),
    ("car", ("自驾", "开车", "汽车", "drive", "driving", "road trip", "car")),
    ("bus", ("大巴", "客车", "巴士", "coach", "bus")),
)

# Canonical tag -> keywords that imply it
PREFERENCE_KEYWORDS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("美食", ("美食", "吃饭", "餐厅", "小吃", "夜市")),
    ("购物", ("购物", "商场", "逛街", "买买买")),
    ("历史文化", ("文化", "历史", "博物馆", "古迹", "遗址")),
    ("自然风光", ("自然", "风景", "山水", "森林", "海边", "海滩")),
    ("艺术博物馆", ("艺术", "美术馆", "展览", "演出")),
    ("夜生活", ("夜生活", "酒吧", "夜市", "夜景")),
    ("户外运动", ("户外", "徒步", "登山", "骑行", "运动")),
    ("摄影", ("摄影", "拍照", "打卡", "网红")),
    ("温泉", ("温泉", "泡汤", "养生", "按摩")),
    ("主题公园", ("主题公园", "游乐场", "迪士尼", "环球影城")),
    ("food", ("food", "restaurant", "eat", "cuisine")),
    ("shopping", ("shopping", "shop", "mall")),
    ("culture", ("culture", "history", "museum", "heritage")),
    ("nature", ("nature", "scenery", "beach", "mountain")),
    ("nightlife", ("nightlife", "bar", "club")),
    ("outdoor", ("hiking", "cycling", "outdoor")),
    ("photography", ("photography", "photo")),
    ("theme park", ("theme park", "disney", "universal studios")),
)

SPECIAL_NEED_KEYWORDS = (
    "小孩", "儿童", "宝宝", "婴儿",
    "老人", "长辈",
    "轮椅", "无障碍", "残疾人", "行动不便",
    "素食", "清真", "不吃肉", "饮食禁忌",
    "过敏", "药物", "药品",
    "紧急联系人", "保险", "医疗",
)
SPECIAL_NEED_KEYWORDS_EN = (
    "kids", "children", "toddler", "baby",
    "elderly", "wheelchair", "accessible",
    "vegetarian", "vegan", "halal", "allergy", "allergic",
)

_ASCII_WORD = re.compile(r"^[a-z ]+$")


def _contains(text: str, lowered: str, keyword: str) -> bool:
    if _ASCII_WORD.match(keyword):
        return re.search(rf"\b{re.escape(keyword)}s?\b", lowered) is not None
    return keyword in text


def _first_group(patterns: tuple[re.Pattern, ...], text: str) -> str | None:
    for pattern in patterns:
        match = pattern.search(text)
        if match:
            value = match.group(1).strip()
            if value:
                return value
    return None


def _parse_budget(text: str) -> int:
    for pattern in _BUDGET_PATTERNS:
        match = pattern.search(text)
        if match:
            amount = to_float(match.group(1), -1.0)
            if amount < 0:
                continue
            unit = (match.group(2) or "").lower()
            return int(min(amount * _BUDGET_MULTIPLIERS.get(unit, 1), MAX_BUDGET))
    return DEFAULT_BUDGET


def _parse_travelers(text: str) -> int:
    for pattern in _TRAVELER_PATTERNS:
        match = pattern.search(text)
        count = to_int(match.group(1), 0) if match else 0
        if count >= 1:
            return min(count, MAX_TRAVELERS)
    return DEFAULT_TRAVELERS


def _parse_transport(text: str, lowered: str) -> str:
    for mode, keywords in TRANSPORT_KEYWORDS:
        if any(_contains(text, lowered, k) for k in keywords):
            return mode
    return "mixed"


def _parse_preferences(text: str, lowered: str) -> list[str]:
    tags: list[str] = []
    for tag, keywords in PREFERENCE_KEYWORDS:
        if tag not in tags and any(_contains(text, lowered, k) for k in keywords):
            tags.append(tag)
    return tags


def _parse_special_needs(text: str, lowered: str) -> str | None:
    found = [k for k in SPECIAL_NEED_KEYWORDS if k in text]
    if found:
        return f"特殊需求: {', '.join(found)}"
    found = [k for k in SPECIAL_NEED_KEYWORDS_EN if _contains(text, lowered, k)]
    if found:
        return f"Special needs: {', '.join(found)}"
    return None


PARSE_SYSTEM = """
You extract travel-planning form fields from a voice transcript.
Return a single JSON object with the keys origin, destination, transportMode
(one of flight, train, car, bus, mixed), budget (number), travelers (number),
preferences (array of strings) and additionalRequirements (string).
Use an empty string, 0 or an empty array for anything not mentioned.
Return JSON only.
"""


class VoiceInputParser:
    def __init__(self, llm: Any = None, *, api_key: str | None = LLM_API_KEY, timeout: float = LLM_TIMEOUT_SECONDS) -> None:
        self.timeout = timeout
        if llm is not None:
            self.llm = llm
        else:
            try:
                self.llm = create_llm(api_key, timeout)
            except Exception as exc:
                logger.warning(f"[{AGENT_LABEL}] Chat client unavailable: {type(exc).__name__}: {exc}")
                self.llm = None
        self._prompt = ChatPromptTemplate.from_messages(
            [
                ("system", PARSE_SYSTEM),
                ("user", "Transcript: {text}"),
            ]
        )

    def parse_basic(self, text: str) -> PartialTripRequest:
        lowered = text.lower()
        return PartialTripRequest(
            origin=_first_group(_ORIGIN_PATTERNS, text),
            destination=_first_group(_DESTINATION_PATTERNS, text),
            budget=_parse_budget(text),
            travelers=_parse_travelers(text),
            preferences=_parse_preferences(text, lowered),
            transport_mode=_parse_transport(text, lowered),
            additional_requirements=_parse_special_needs(text, lowered),
        )

    async def parse(self, text: str) -> PartialTripRequest:
        basic = self.parse_basic(text)
        if self.llm is None:
            return basic

        chain = self._prompt | self.llm
        try:
            message = await asyncio.wait_for(chain.ainvoke({"text": text}), timeout=self.timeout)
            content = getattr(message, "content", message)
            payload = json.loads(content) if isinstance(content, str) else content
            if not isinstance(payload, dict):
                raise ValueError("extraction is not a JSON object")
            return self._merge(basic, payload)
        except Exception as exc:
            logger.warning(f"[{AGENT_LABEL}] Structured extraction failed, using keyword parse: {type(exc).__name__}: {exc}")
            return basic

    @staticmethod
    def _merge(basic: PartialTripRequest, payload: dict) -> PartialTripRequest:
        """Backend values win where present; the keyword parse fills the rest."""
        mode = to_text(payload.get("transportMode") or payload.get("transport_mode")).lower()
        budget = to_int(payload.get("budget"), 0)
        travelers = to_int(payload.get("travelers"), 0)
        preferences = to_text_list(payload.get("preferences"))
        extra = to_text(payload.get("additionalRequirements") or payload.get("additional_requirements"))
        return PartialTripRequest(
            origin=to_text(payload.get("origin")) or basic.origin,
            destination=to_text(payload.get("destination")) or basic.destination,
            budget=min(budget, MAX_BUDGET) or basic.budget,
            travelers=min(travelers, MAX_TRAVELERS) or basic.travelers,
            preferences=preferences or basic.preferences,
            transport_mode=mode if mode in TRANSPORT_MODES else basic.transport_mode,
            additional_requirements=extra or basic.additional_requirements,
        )


__all__ = ["VoiceInputParser", "DEFAULT_BUDGET", "DEFAULT_TRAVELERS"]
