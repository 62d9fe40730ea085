import pytest

from localrank.core import ranking
from localrank.models import PlaceRecord, ResolvedLocation, TargetDescriptor

CENTER = ResolvedLocation(latitude=40.7128, longitude=-74.006, source_strategy="gazetteer")


def _record(index, name, external_ref="", rating=None, reviews=None):
    return PlaceRecord(
        result_id=f"r{index}",
        name=name,
        external_ref=external_ref,
        rating=rating,
        review_count=reviews,
    )


@pytest.mark.parametrize(
    "a, b, similarity",
    [("kitten", "sitting", 4 / 7), ("acme plumbing", "acme plumbing inc", 13 / 17), ("flaw", "lawn", 0.5)],
)
def test_name_similarity_uses_edit_distance(a, b, similarity):
    assert ranking.name_similarity(a, b) == pytest.approx(similarity)
    assert ranking.name_similarity(b, a) == pytest.approx(similarity)


def test_name_similarity():
    assert ranking.name_similarity("", "") == 1.0
    assert ranking.name_similarity("abcd", "abcd") == 1.0
    assert ranking.name_similarity("abcd", "wxyz") == 0.0


def test_exact_name_match_ignores_case_and_whitespace():
    results = [_record(1, "Joe's Pizza"), _record(2, " apex security services "), _record(3, "Other")]

    ranked = ranking.rank_results(results, TargetDescriptor(name="Apex Security Services"))

    assert len(ranked) == 3
    assert [entry.rank for entry in ranked] == [1, 2, 3]
    assert [entry.is_target for entry in ranked] == [False, True, False]
    assert ranked[1].visibility_score == 74
    assert ranked[1].difficulty == "LOW"


def test_external_ref_wins_over_name():
    results = [_record(1, "Different Name", external_ref="pid-9"), _record(2, "Acme Plumbing")]

    ranked = ranking.rank_results(results, TargetDescriptor(name="Acme Plumbing", external_ref="pid-9"))

    assert ranking.find_target(ranked).rank == 1
    assert sum(entry.is_target for entry in ranked) == 1


def test_containment_match_requires_similarity():
    close = ranking.rank_results([_record(1, "Acme Plumbing Inc")], TargetDescriptor(name="Acme Plumbing"))
    far = ranking.rank_results(
        [_record(1, "Acme Plumbing and Heating Services")], TargetDescriptor(name="Acme")
    )

    assert close[0].is_target
    assert len(close) == 1
    assert not far[0].is_target
    assert far[-1].is_target and far[-1].rank == 2


def test_only_first_match_is_flagged():
    ranked = ranking.rank_results([_record(1, "Acme"), _record(2, "ACME")], TargetDescriptor(name="Acme"))
    assert [entry.is_target for entry in ranked] == [True, False]


def test_empty_results_synthesize_target_at_rank_one():
    target = TargetDescriptor(name="Acme", address="1 Main St")

    ranked = ranking.rank_results([], target, center=CENTER)

    assert len(ranked) == 1
    entry = ranked[0]
    assert entry.is_target
    assert entry.rank == 1
    assert entry.visibility_score == 86
    assert entry.difficulty == "LOW"
    assert entry.address == "1 Main St"
    assert abs(entry.latitude - CENTER.latitude) <= ranking.SYNTHETIC_JITTER_DEG
    assert abs(entry.longitude - CENTER.longitude) <= ranking.SYNTHETIC_JITTER_DEG


def test_target_not_found_is_appended():
    results = [_record(index, f"Shop {index}") for index in range(1, 13)]

    ranked = ranking.rank_results(results, TargetDescriptor(name="Acme"))

    assert len(ranked) == 13
    assert ranked[-1].is_target
    assert ranked[-1].rank == 13
    assert ranked[-1].difficulty == "HIGH"
    assert ranked[-1].latitude is None


def test_ranking_is_idempotent():
    results = [_record(1, "Shop"), _record(2, "Store")]
    target = TargetDescriptor(name="Acme", address="1 Main St")

    assert ranking.rank_results(results, target, center=CENTER) == ranking.rank_results(results, target, center=CENTER)


def test_raw_provider_dicts_and_malformed_entries():
    results = [
        {"place_id": "p1", "name": "Acme", "rating": 4.8, "user_ratings_total": 12},
        {"rating": "bad"},
        "not a record",
    ]

    ranked = ranking.rank_results(results, TargetDescriptor(name="Acme"))

    assert len(ranked) == 3
    assert ranked[0].is_target and ranked[0].rating == 4.8
    assert ranked[1].rating is None
    assert ranked[2].name == "Unknown Business"


def test_visibility_is_bounded_and_non_increasing():
    scores = [ranking.calculate_visibility(rank) for rank in range(1, 101)]
    assert scores[0] == 86
    assert all(5 <= score <= 100 for score in scores)
    assert all(a >= b for a, b in zip(scores, scores[1:]))
    assert ranking.calculate_visibility(30) == 5


@pytest.mark.parametrize("rank, difficulty", [(1, "LOW"), (3, "LOW"), (4, "MEDIUM"), (10, "MEDIUM"), (11, "HIGH")])
def test_difficulty_buckets(rank, difficulty):
    assert ranking.calculate_difficulty(rank) == difficulty
