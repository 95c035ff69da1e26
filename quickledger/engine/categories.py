"""Tiered matching of an entry subject against a ledger's categories."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Sequence, Union

from rapidfuzz.distance import Levenshtein

from ..schemas.entry import CategoryEntry
from .lexicon import normalize_text

MIN_CONTAINMENT_LENGTH = 2


class MatchRule(str, Enum):
    EXACT_NAME = "exact_name"
    EXACT_SYNONYM = "exact_synonym"
    NAME_CONTAINS_INPUT = "name_contains_input"
    INPUT_CONTAINS_NAME = "input_contains_name"
    SYNONYM_CONTAINS_INPUT = "synonym_contains_input"
    INPUT_CONTAINS_SYNONYM = "input_contains_synonym"
    SIMILARITY = "similarity"


# Upper bound of the score for each containment rule; the actual score is
# cap * (shorter length / longer length).
CONTAINMENT_CAPS: dict[MatchRule, float] = {
    MatchRule.NAME_CONTAINS_INPUT: 0.95,
    MatchRule.INPUT_CONTAINS_NAME: 0.9,
    MatchRule.SYNONYM_CONTAINS_INPUT: 0.85,
    MatchRule.INPUT_CONTAINS_SYNONYM: 0.8,
}


@dataclass(frozen=True)
class CategoryMatch:
    category: CategoryEntry
    rule: MatchRule
    score: float = 1.0
    matched: str = ""


@dataclass(frozen=True)
class RequiresClassification:
    subject: str
    candidates: tuple[CategoryEntry, ...] = field(default_factory=tuple)


CategoryResolution = Union[CategoryMatch, RequiresClassification]


@dataclass(frozen=True)
class _Scored:
    score: float
    coverage: float
    index: int
    match: CategoryMatch


def similarity(left: str, right: str) -> float:
    """``1 - distance / max length`` on the normalized strings."""
    return Levenshtein.normalized_similarity(normalize_text(left), normalize_text(right))


def _containment(text: str, target: str) -> Optional[tuple[MatchRule, float]]:
    """Classify a name/synonym containment pair. ``None`` when neither contains the other."""
    if target == text:
        return None
    if text in target and len(text) >= MIN_CONTAINMENT_LENGTH:
        return MatchRule.NAME_CONTAINS_INPUT, len(text) / len(target)
    if target in text and len(target) >= MIN_CONTAINMENT_LENGTH:
        return MatchRule.INPUT_CONTAINS_NAME, len(target) / len(text)
    return None


def _synonym_rule(rule: MatchRule) -> MatchRule:
    if rule is MatchRule.NAME_CONTAINS_INPUT:
        return MatchRule.SYNONYM_CONTAINS_INPUT
    return MatchRule.INPUT_CONTAINS_SYNONYM


def _best_containment(text: str, active: Sequence[CategoryEntry]) -> Optional[CategoryMatch]:
    scored: list[_Scored] = []
    for index, category in enumerate(active):
        targets = [(normalize_text(category.name), False)]
        targets.extend((normalize_text(synonym), True) for synonym in sorted(category.synonyms))
        best: Optional[_Scored] = None
        for target, is_synonym in targets:
            found = _containment(text, target)
            if found is None:
                continue
            rule, coverage = found
            if is_synonym:
                rule = _synonym_rule(rule)
            score = CONTAINMENT_CAPS[rule] * coverage
            candidate = _Scored(score, coverage, index, CategoryMatch(category, rule, score, target))
            if best is None or (candidate.score, candidate.coverage) > (best.score, best.coverage):
                best = candidate
        if best is not None:
            scored.append(best)
    if not scored:
        return None
    scored.sort(key=lambda item: (-item.score, -item.coverage, item.index))
    return scored[0].match


def _best_similarity(
    text: str, active: Sequence[CategoryEntry], threshold: float
) -> Optional[CategoryMatch]:
    best: Optional[CategoryMatch] = None
    for category in active:
        for target in [category.name, *sorted(category.synonyms)]:
            score = similarity(text, target)
            # Strictly greater keeps the earlier registry entry on ties.
            if score > threshold and (best is None or score > best.score):
                best = CategoryMatch(category, MatchRule.SIMILARITY, score, normalize_text(target))
    return best


def rank_candidates(subject: str, registry: Sequence[CategoryEntry]) -> tuple[CategoryEntry, ...]:
    """Active categories, most similar to ``subject`` first, registry order on ties."""
    active = [category for category in registry if category.active]
    ranked = sorted(
        enumerate(active),
        key=lambda item: (
            -max(similarity(subject, target) for target in [item[1].name, *item[1].synonyms]),
            item[0],
        ),
    )
    return tuple(category for _, category in ranked)


def resolve_category(
    subject: str, registry: Sequence[CategoryEntry], threshold: float = 0.6
) -> CategoryResolution:
    """Resolve ``subject`` to one category.

    Tiers, first hit wins: exact name, exact synonym, containment (four
    separately capped rules, ties by coverage then registry order), then edit
    distance similarity strictly above ``threshold``.
    """
    text = normalize_text(subject)
    active = [category for category in registry if category.active]
    if not text:
        return RequiresClassification(subject=subject, candidates=tuple(active))

    for category in active:
        if normalize_text(category.name) == text:
            return CategoryMatch(category, MatchRule.EXACT_NAME, 1.0, text)

    for category in active:
        if any(normalize_text(synonym) == text for synonym in category.synonyms):
            return CategoryMatch(category, MatchRule.EXACT_SYNONYM, 1.0, text)

    contained = _best_containment(text, active)
    if contained is not None:
        return contained

    similar = _best_similarity(text, active, threshold)
    if similar is not None:
        return similar

    return RequiresClassification(subject=subject, candidates=rank_candidates(subject, active))
