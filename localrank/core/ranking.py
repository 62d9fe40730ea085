"""Rank, visibility and target matching over provider-ordered search results."""

from __future__ import annotations

import logging
import math
import random
import zlib
from typing import Any, List, Mapping, Optional, Sequence, Union

from rapidfuzz.distance import Levenshtein

from localrank.etl.transform import to_place_record
from localrank.models import BusinessResult, Difficulty, PlaceRecord, ResolvedLocation, TargetDescriptor

logger = logging.getLogger(__name__)

SIMILARITY_THRESHOLD = 0.70
VISIBILITY_DECAY = 0.15
MIN_VISIBILITY = 5
MAX_VISIBILITY = 100
SYNTHETIC_JITTER_DEG = 0.005

ResultLike = Union[PlaceRecord, Mapping[str, Any]]


def normalize_name(name: Optional[str]) -> str:
    return (name or "").lower().strip()


def name_similarity(name1: str, name2: str) -> float:
    longest = max(len(name1), len(name2))
    if longest == 0:
        return 1.0
    return (longest - Levenshtein.distance(name1, name2)) / longest


def is_target_match(record: PlaceRecord, target: TargetDescriptor) -> bool:
    """External ref, then exact normalized name, then containment gated by similarity."""
    if record.external_ref and target.external_ref and record.external_ref == target.external_ref:
        return True

    record_name = normalize_name(record.name)
    target_name = normalize_name(target.name)
    if record_name == target_name:
        return True

    if record_name in target_name or target_name in record_name:
        return name_similarity(record_name, target_name) >= SIMILARITY_THRESHOLD
    return False


def calculate_visibility(rank: int) -> int:
    visibility = round(100 * math.exp(-VISIBILITY_DECAY * rank))
    return max(MIN_VISIBILITY, min(MAX_VISIBILITY, visibility))


def calculate_difficulty(rank: int) -> Difficulty:
    # Competitive pressure at this position: read both as how hard the incumbent
    # is to outrank and how hard the spot is to hold.
    if rank <= 3:
        return "LOW"
    if rank <= 10:
        return "MEDIUM"
    return "HIGH"


def _as_record(result: ResultLike, index: int) -> PlaceRecord:
    if isinstance(result, PlaceRecord):
        return result
    if isinstance(result, Mapping):
        return to_place_record(result, index)
    logger.warning("Ignoring malformed result at position %d: %r", index, type(result).__name__)
    return to_place_record({}, index)


def _target_rng(target: TargetDescriptor) -> random.Random:
    return random.Random(zlib.crc32(f"{target.name}|{target.address}|{target.external_ref or ''}".encode("utf-8")))


def synthesize_target(
    target: TargetDescriptor,
    rank: int,
    center: Optional[ResolvedLocation] = None,
    rng: Optional[random.Random] = None,
) -> BusinessResult:
    """BusinessResult for a target absent from the results; coordinates are display-only."""
    latitude = longitude = None
    if center is not None:
        rng = rng or _target_rng(target)
        latitude = center.latitude + (rng.random() - 0.5) * 2 * SYNTHETIC_JITTER_DEG
        longitude = center.longitude + (rng.random() - 0.5) * 2 * SYNTHETIC_JITTER_DEG

    return BusinessResult(
        result_id=target.external_ref or f"target_{rank}",
        name=target.name,
        address=target.address,
        external_ref=target.external_ref or "",
        rank=rank,
        visibility_score=calculate_visibility(rank),
        difficulty=calculate_difficulty(rank),
        is_target=True,
        latitude=latitude,
        longitude=longitude,
    )


def rank_results(
    results: Sequence[ResultLike],
    target: TargetDescriptor,
    center: Optional[ResolvedLocation] = None,
    rng: Optional[random.Random] = None,
) -> List[BusinessResult]:
    """Rank results in provider order and flag (or append) exactly one target entry."""
    ranked: List[BusinessResult] = []
    target_found = False

    for index, result in enumerate(results):
        record = _as_record(result, index)
        rank = index + 1
        is_target = not target_found and is_target_match(record, target)
        if is_target:
            target_found = True
            logger.info("Target %r matched %r at rank #%d", target.name, record.name, rank)

        ranked.append(
            BusinessResult(
                result_id=record.result_id,
                name=record.name,
                address=record.address,
                external_ref=record.external_ref,
                rank=rank,
                visibility_score=calculate_visibility(rank),
                difficulty=calculate_difficulty(rank),
                is_target=is_target,
                rating=record.rating,
                review_count=record.review_count,
                latitude=record.latitude,
                longitude=record.longitude,
            )
        )

    if not target_found:
        synthetic = synthesize_target(target, len(ranked) + 1, center=center, rng=rng)
        logger.info("Target %r not found in %d results; added at rank #%d", target.name, len(ranked), synthetic.rank)
        ranked.append(synthetic)

    return ranked


def find_target(results: Sequence[BusinessResult]) -> Optional[BusinessResult]:
    return next((result for result in results if result.is_target), None)
