from datetime import datetime, timedelta, timezone

import pytest

from repo_search.core.models.status import IndexingStatus, IndexStatus
from repo_search.core.strategies.scoring import (
    HYBRID_SCORING_PROFILE,
    FreshnessFunction,
    reciprocal_rank_fusion,
    tokenize,
)

NOW = datetime(2024, 6, 1, tzinfo=timezone.utc)


def test_freshness_decays_linearly():
    freshness = FreshnessFunction()

    assert freshness.multiplier(NOW, NOW) == pytest.approx(1.1)
    assert freshness.multiplier(NOW - timedelta(days=15), NOW) == pytest.approx(1.05)
    assert freshness.multiplier(NOW - timedelta(days=45), NOW) == 1.0


def test_text_score_uses_field_weights():
    fields = {
        "file_name": "orders.py",
        "content": "nothing relevant",
        "code_symbols": ["class:Orders"],
    }

    score = HYBRID_SCORING_PROFILE.text_score(tokenize("orders"), fields)

    assert score == pytest.approx(2.0 + 1.8)


def test_reciprocal_rank_fusion():
    fused = reciprocal_rank_fusion([["a", "b"], ["b", "c"]])

    assert fused["b"] == pytest.approx(1 / 62 + 1 / 61)
    assert fused["a"] == pytest.approx(1 / 61)
    assert max(fused, key=fused.get) == "b"


def test_status_progress():
    status = IndexStatus(
        status=IndexingStatus.IN_PROGRESS, documents_indexed=1, total_documents=4
    )

    assert status.progress_percentage == 25.0
    assert IndexStatus().progress_percentage == 0.0
    assert status.to_dict()["status"] == "in_progress"
