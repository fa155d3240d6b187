"""Candidate extraction - turns recent user utterances into memory candidates.

Two tiers:
1. Model-assisted: ask the completion service for strict JSON
   {"facts": [...], "insights": [...]} and parse it leniently.
2. Heuristic: first-person sentences classified by keyword hints.
   Runs when tier 1 came back short.
"""

import json
import re
import string
from collections.abc import Callable
from typing import Any

from coachmem.core.logging import get_logger
from coachmem.llm.base import TextCompleter
from coachmem.memory.base import MemoryCandidate, MemoryKind
from coachmem.memory.keywords import (
    FIRST_PERSON_MARKERS,
    INSIGHT_HINTS,
    SHORT_TERM_MARKERS,
    STABLE_FACT_HINTS,
    contains_any,
)

logger = get_logger("memory.extraction")

EXTRACTION_SYSTEM_PROMPT = (
    "Extract durable user profile memory for habit coaching. Return strict JSON only."
)

EXTRACTION_PROMPT = """You are extracting long-term coaching memory from user messages.
Return JSON only, with this exact shape:
{{"facts": ["..."], "insights": ["..."]}}
Rules:
- facts: stable constraints/preferences/schedules likely useful for weeks.
- insights: recurring behavior patterns, obstacles, motivation triggers.
- Keep each item one concise sentence, <= 140 chars.
- Do not include temporary details tied only to today/yesterday.
- Max 2 facts and 2 insights.

Messages:
{messages}
"""

MAX_ITEMS_PER_ARRAY = 2
MAX_SENTENCE_CHARS = 220
MIN_SENTENCE_CHARS = 18
MAX_CANDIDATES_PER_UTTERANCE = 2
HEURISTIC_TRIGGER_BELOW = 6  # run heuristics while fewer model candidates than this
RUNNING_CANDIDATE_CAP = 8

_TERMINAL_PUNCTUATION = (".", "!", "?", "。", "！", "？")
_QUOTES = "\"'“”‘’"
_LEADING_QUOTES = re.compile(f"^[{_QUOTES}]+")
_TRAILING_QUOTES = re.compile(f"[{_QUOTES}]+$")
_SENTENCE_BOUNDARY = re.compile(r"(?<=[.!?。！？])\s+")
_WHITESPACE = re.compile(r"\s+")
_PUNCTUATION = re.compile(f"[{re.escape(string.punctuation)}]+")
_FENCED_BLOCK = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```", re.IGNORECASE)


def normalize_for_dedup(content: str) -> str:
    """Lowercase, punctuation runs to spaces, whitespace collapsed."""
    text = _PUNCTUATION.sub(" ", content.lower())
    return _WHITESPACE.sub(" ", text).strip()


def normalize_candidate_sentence(sentence: str) -> str:
    """Strip wrapping quotes, cap length, ensure terminal punctuation."""
    text = _LEADING_QUOTES.sub("", sentence)
    text = _TRAILING_QUOTES.sub("", text).strip()
    if len(text) > MAX_SENTENCE_CHARS:
        text = text[:MAX_SENTENCE_CHARS].strip()
    if not text.endswith(_TERMINAL_PUNCTUATION):
        text += "."
    return text


# ---------------------------------------------------------------------------
# Heuristic tier
# ---------------------------------------------------------------------------


def split_sentences(text: str) -> list[str]:
    normalized = _WHITESPACE.sub(" ", text or "").strip()
    if not normalized:
        return []
    return [s for s in _SENTENCE_BOUNDARY.split(normalized) if s] or [normalized]


def classify_sentence(sentence: str) -> MemoryKind | None:
    """Kind for a first-person sentence with a durable signal, else None."""
    trimmed = sentence.strip()
    if not MIN_SENTENCE_CHARS <= len(trimmed) <= MAX_SENTENCE_CHARS:
        return None

    lower = f" {trimmed.lower()} "
    if "?" in lower or "？" in lower:
        return None
    if not contains_any(lower, FIRST_PERSON_MARKERS):
        return None

    has_fact_hint = contains_any(lower, STABLE_FACT_HINTS)
    has_insight_hint = contains_any(lower, INSIGHT_HINTS)
    short_term_only = contains_any(lower, SHORT_TERM_MARKERS) and not has_fact_hint

    if short_term_only or not (has_fact_hint or has_insight_hint):
        return None
    return MemoryKind.LONG_TERM_FACT if has_fact_hint else MemoryKind.USER_INSIGHT


def extract_heuristic_candidates(text: str) -> list[MemoryCandidate]:
    """Rule-based candidates from one utterance (at most 2)."""
    candidates: list[MemoryCandidate] = []
    for sentence in split_sentences(text):
        kind = classify_sentence(sentence)
        if kind is None:
            continue
        candidates.append(MemoryCandidate(kind, normalize_candidate_sentence(sentence.strip())))
        if len(candidates) >= MAX_CANDIDATES_PER_UTTERANCE:
            break
    return candidates


# ---------------------------------------------------------------------------
# Model-assisted tier
# ---------------------------------------------------------------------------


def _fenced_block(raw: str) -> str | None:
    match = _FENCED_BLOCK.search(raw)
    return match.group(1).strip() if match else None


def _brace_span(raw: str) -> str | None:
    first = raw.find("{")
    last = raw.rfind("}")
    if first >= 0 and last > first:
        return raw[first:last + 1].strip()
    return None


def _whole_text(raw: str) -> str | None:
    return raw or None


# Tried in order, first non-None payload wins.
JSON_LOCATORS: tuple[Callable[[str], str | None], ...] = (
    _fenced_block,
    _brace_span,
    _whole_text,
)


def locate_json_payload(raw_output: str | None) -> str | None:
    trimmed = (raw_output or "").strip()
    if not trimmed:
        return None
    for locate in JSON_LOCATORS:
        payload = locate(trimmed)
        if payload:
            return payload
    return None


def _candidates_from_array(items: Any, kind: MemoryKind) -> list[MemoryCandidate]:
    if not isinstance(items, list):
        return []
    candidates = []
    for item in items:
        if not isinstance(item, str) or not item.strip():
            continue
        candidates.append(MemoryCandidate(kind, normalize_candidate_sentence(item.strip())))
        if len(candidates) >= MAX_ITEMS_PER_ARRAY:
            break
    return candidates


def parse_structured_candidates(raw_output: str | None) -> list[MemoryCandidate]:
    """Parse model output into candidates. Malformed output yields []."""
    payload = locate_json_payload(raw_output)
    if not payload:
        return []
    try:
        root = json.loads(payload)
    except json.JSONDecodeError as e:
        logger.warning(f"Structured memory output is not valid JSON: {e}")
        return []
    if not isinstance(root, dict):
        logger.warning("Structured memory output is not a JSON object")
        return []

    return (
        _candidates_from_array(root.get("facts"), MemoryKind.LONG_TERM_FACT)
        + _candidates_from_array(root.get("insights"), MemoryKind.USER_INSIGHT)
    )


def build_extraction_prompt(utterances: list[str]) -> str:
    numbered = "\n".join(f"{i}. {text}" for i, text in enumerate(utterances, start=1))
    return EXTRACTION_PROMPT.format(messages=numbered)


class CandidateExtractor:
    """Layered extraction: model-assisted first, heuristics to fill the gap."""

    def __init__(self, completer: TextCompleter | None = None, llm_enabled: bool = True):
        self.completer = completer
        self.llm_enabled = llm_enabled and completer is not None

    async def extract(self, utterances: list[str]) -> list[MemoryCandidate]:
        if not utterances:
            return []

        candidates = await self.extract_with_llm(utterances)
        if len(candidates) < HEURISTIC_TRIGGER_BELOW:
            for text in utterances:
                candidates.extend(extract_heuristic_candidates(text))
                if len(candidates) >= RUNNING_CANDIDATE_CAP:
                    break

        logger.debug(f"Extracted {len(candidates)} memory candidates")
        return candidates

    async def extract_with_llm(self, utterances: list[str]) -> list[MemoryCandidate]:
        """Model-assisted tier. Never raises."""
        if not self.llm_enabled or not utterances:
            return []
        try:
            raw = await self.completer.complete(
                EXTRACTION_SYSTEM_PROMPT, build_extraction_prompt(utterances)
            )
        except Exception as e:
            logger.warning(f"Model-assisted memory extraction failed: {e}")
            return []
        return parse_structured_candidates(raw)
