"""Scoring profile and rank fusion helpers."""
import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Mapping, Sequence

RRF_K = 60

_TERM_RE = re.compile(r"[A-Za-z0-9_]+")


def tokenize(text: str) -> list[str]:
    """Lower-cased word terms of a text."""
    return [t.lower() for t in _TERM_RE.findall(text or "")]


@dataclass(frozen=True)
class FreshnessFunction:
    """Linear boost for recently modified documents.

    A document modified now gets the full boost; the boost decays linearly to
    none at the end of the window.
    """
    field_name: str = "last_modified"
    boost: float = 1.1
    window: timedelta = timedelta(days=30)

    def multiplier(self, modified: datetime, now: datetime | None = None) -> float:
        now = now or datetime.now(timezone.utc)
        if modified.tzinfo is None:
            modified = modified.replace(tzinfo=timezone.utc)
        age = max((now - modified).total_seconds(), 0.0)
        remaining = 1.0 - age / self.window.total_seconds()
        if remaining <= 0:
            return 1.0
        return 1.0 + (self.boost - 1.0) * remaining

    def to_definition(self) -> dict[str, Any]:
        return {
            "type": "freshness",
            "fieldName": self.field_name,
            "boost": self.boost,
            "interpolation": "linear",
            "freshness": {"boostingDuration": f"P{self.window.days}D"},
        }


@dataclass(frozen=True)
class ScoringProfile:
    """Named relevance profile: per-field text weights plus freshness."""
    name: str
    text_weights: Mapping[str, float]
    freshness: FreshnessFunction = field(default_factory=FreshnessFunction)

    def text_score(self, terms: Sequence[str], fields: Mapping[str, Any]) -> float:
        """Weighted count of query terms found in each weighted field.

        Args:
            terms: Lower-cased query terms.
            fields: Field values of one document (strings or lists of strings).

        Returns:
            Sum over fields of weight * number of matching terms.
        """
        if not terms:
            return 0.0

        score = 0.0
        for field_name, weight in self.text_weights.items():
            value = fields.get(field_name)
            if not value:
                continue
            if isinstance(value, (list, tuple)):
                value = " ".join(str(v) for v in value)
            field_terms = set(tokenize(str(value)))
            hits = sum(1 for t in terms if t in field_terms)
            score += weight * hits
        return score

    def apply_freshness(
        self, score: float, modified: datetime, now: datetime | None = None
    ) -> float:
        return score * self.freshness.multiplier(modified, now)

    def to_definition(self) -> dict[str, Any]:
        """Scoring profile in search-service index definition format."""
        return {
            "name": self.name,
            "text": {"weights": dict(self.text_weights)},
            "functions": [self.freshness.to_definition()],
            "functionAggregation": "sum",
        }


HYBRID_SCORING_PROFILE = ScoringProfile(
    name="hybrid-scoring",
    text_weights={
        "file_name": 2.0,
        "code_symbols": 1.8,
        "file_path": 1.5,
        "repository_name": 1.2,
        "content": 1.0,
    },
)


def reciprocal_rank_fusion(
    rankings: Sequence[Sequence[str]], k: int = RRF_K
) -> dict[str, float]:
    """Fuse several ranked id lists into one score per id.

    Args:
        rankings: Lists of ids, best first.
        k: Damping constant.

    Returns:
        Mapping id -> sum of 1 / (k + rank) over the lists containing it.
    """
    fused: dict[str, float] = {}
    for ranking in rankings:
        for rank, doc_id in enumerate(ranking, 1):
            fused[doc_id] = fused.get(doc_id, 0.0) + 1.0 / (k + rank)
    return fused
