"""Keyword relevance ranking over detected entry points."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence

from ..logging import get_logger
from ..models import ClassRecord, EntryPoint, EntryPointMatch, MethodRecord, ProjectStructure

RELEVANCE_THRESHOLD = 15

CLASS_NAME_WEIGHT = 10
METHOD_NAME_WEIGHT = 20
PATH_WEIGHT = 15
DESCRIPTION_WEIGHT = 5
ANNOTATION_VALUE_WEIGHT = 8
METHOD_ANNOTATION_WEIGHT = 8


@dataclass
class _Score:
    total: int = 0
    reasons: List[str] = field(default_factory=list)

    def add(self, weight: int, reason: str, keyword: str) -> None:
        self.total += weight
        self.reasons.append(f"{reason} contains '{keyword}' (+{weight})")


class EntryPointRanker:
    """Scores entry points against free-text keywords."""

    def __init__(self, threshold: int = RELEVANCE_THRESHOLD) -> None:
        self.threshold = threshold
        self.logger = get_logger("analyzers.ranking")

    def find_by_keywords(
        self, keywords: Iterable[str], structures: Sequence[ProjectStructure]
    ) -> List[EntryPointMatch]:
        terms = [keyword.strip() for keyword in keywords if keyword and keyword.strip()]
        self.logger.info(
            "Searching entry points for %s across %d projects", terms, len(structures)
        )
        if not terms:
            return []

        matches: List[EntryPointMatch] = []
        for structure in structures:
            for entry_point in structure.entry_points:
                record = structure.classes.get(entry_point.class_name)
                if record is None:
                    continue
                method = record.find_method(entry_point.method_name, entry_point.method_signature)
                score = self._score(entry_point, record, method, terms)
                if score.total < self.threshold:
                    continue
                matches.append(
                    EntryPointMatch(
                        entry_point=entry_point,
                        relevance_score=score.total,
                        project_name=structure.project_name,
                        match_reasons=score.reasons,
                    )
                )

        # sorted() is stable, so equal scores keep encounter order.
        matches = sorted(matches, key=lambda match: match.relevance_score, reverse=True)
        self.logger.info("Found %d matching entry points", len(matches))
        return matches

    def _score(
        self,
        entry_point: EntryPoint,
        record: ClassRecord,
        method: Optional[MethodRecord],
        keywords: List[str],
    ) -> _Score:
        score = _Score()
        for keyword in keywords:
            lowered = keyword.lower()
            if lowered in record.class_name.lower() or lowered in record.full_class_name.lower():
                score.add(CLASS_NAME_WEIGHT, "class name", keyword)
            if lowered in entry_point.method_name.lower():
                score.add(METHOD_NAME_WEIGHT, "method name", keyword)
            if entry_point.path and lowered in entry_point.path.lower():
                score.add(PATH_WEIGHT, "path", keyword)
            if entry_point.description and keyword in entry_point.description:
                score.add(DESCRIPTION_WEIGHT, "description", keyword)
            if _any_contains(_metadata_values(entry_point), lowered):
                score.add(ANNOTATION_VALUE_WEIGHT, "annotation value", keyword)
            if method is not None and _method_annotation_contains(method, lowered):
                score.add(METHOD_ANNOTATION_WEIGHT, "method annotation", keyword)
        return score


def _metadata_values(entry_point: EntryPoint) -> List[object]:
    # The triggering annotation name is classification metadata, not searchable text.
    return [value for key, value in entry_point.annotations.items() if key != "annotation"]


def _any_contains(values: Iterable[object], keyword: str) -> bool:
    return any(value is not None and keyword in str(value).lower() for value in values)


def _method_annotation_contains(method: MethodRecord, keyword: str) -> bool:
    for annotation in method.annotations:
        if keyword in annotation.name.lower():
            return True
        if _any_contains(annotation.attributes.values(), keyword):
            return True
    return False


__all__ = ["EntryPointRanker", "RELEVANCE_THRESHOLD"]
