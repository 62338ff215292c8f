"""CTQ-SF scoring engine.

Turns an answer set (question id -> raw 1..5 response) into per-scale scores,
severity bands and positive flags, using only the scoring configuration.

Missing or invalid responses never abort scoring: the item contributes 0 to
the scale that owns it and a warning is logged for operators. Rejecting
incomplete submissions is the quiz runner's job, not the engine's.
"""
import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Mapping

from services.quiz.models import CtqScale, Severity
from services.quiz.scoring_config import (
    AUXILIARY_SCALE,
    ScoringConfiguration,
    SeverityCutoffs,
    get_scoring_config,
)

logger = logging.getLogger(__name__)

MIN_RESPONSE = 1
MAX_RESPONSE = 5

SEVERITY_RANK = {
    Severity.none: 0,
    Severity.low: 1,
    Severity.moderate: 2,
    Severity.severe: 3,
}


@dataclass(frozen=True)
class ScaleResult:
    score: int
    severity: Severity
    positive: bool


@dataclass(frozen=True)
class CtqResult:
    scales: Mapping[CtqScale, ScaleResult]
    minimization_score: int
    total_score: int
    rules_version: str

    @property
    def highest_severity(self) -> Severity:
        return max((r.severity for r in self.scales.values()), key=SEVERITY_RANK.__getitem__)

    @property
    def needs_support(self) -> bool:
        """True when any clinical scale is Moderate or Severe."""
        return SEVERITY_RANK[self.highest_severity] >= SEVERITY_RANK[Severity.moderate]

    @property
    def support_level(self) -> str:
        highest = self.highest_severity
        if highest == Severity.severe:
            return "severe"
        if highest == Severity.moderate:
            return "moderate"
        return "low"


def is_valid_response(raw: Any) -> bool:
    # bool is an int subclass; True must not pass as a response of 1.
    return isinstance(raw, int) and not isinstance(raw, bool) and MIN_RESPONSE <= raw <= MAX_RESPONSE


def effective_score(question_id: int, raw: Any, config: ScoringConfiguration) -> int | None:
    """Score contributed by one response, or None if the response is unusable.

    Reverse-coded items score ``6 - raw``. Out-of-range values return None
    rather than being run through the reversal.
    """
    if not is_valid_response(raw):
        return None
    if config.is_reverse_coded(question_id):
        return MIN_RESPONSE + MAX_RESPONSE - raw
    return raw


def _normalize_answers(answers: Mapping[Any, Any]) -> dict[int, Any]:
    normalized: dict[int, Any] = {}
    for key, raw in answers.items():
        # ints (not bool) and decimal strings only
        if isinstance(key, int) and not isinstance(key, bool):
            normalized[key] = raw
        elif isinstance(key, str) and key.isdecimal():
            normalized[int(key)] = raw
        else:
            logger.warning(f"Ignoring answer with unrecognized question id {key!r}")
    return normalized


def score_scales(answers: Mapping[Any, Any], config: ScoringConfiguration) -> dict[CtqScale, int]:
    """Raw scale scores: sums for clinical scales, a count of 5s for minimization/denial."""
    responses = _normalize_answers(answers)
    scores: dict[CtqScale, int] = {}

    for scale in config.clinical_scales:
        total = 0
        for q_id in config.scales[scale]:
            value = effective_score(q_id, responses.get(q_id), config)
            if value is None:
                logger.warning(
                    f"Missing or invalid answer {responses.get(q_id)!r} for question {q_id}; "
                    f"treating as 0 for {scale.value}"
                )
                continue
            total += value
        scores[scale] = total

    md_count = 0
    for q_id in config.scales[AUXILIARY_SCALE]:
        raw = responses.get(q_id)
        if not is_valid_response(raw):
            logger.warning(f"Missing or invalid answer {raw!r} for minimization/denial question {q_id}; not counted")
        elif raw == MAX_RESPONSE:
            md_count += 1
    scores[AUXILIARY_SCALE] = md_count

    unknown = sorted(set(responses) - set(config.question_ids))
    if unknown:
        logger.warning(f"Ignoring answers for question ids outside the instrument: {unknown}")

    return scores


def classify_severity(score: int, cutoffs: SeverityCutoffs) -> Severity:
    if score >= cutoffs.severe:
        return Severity.severe
    if score >= cutoffs.moderate:
        return Severity.moderate
    if score >= cutoffs.low:
        return Severity.low
    return Severity.none


def is_positive(score: int, cutoff: int) -> bool:
    return score >= cutoff


def compute_result(answers: Mapping[Any, Any], config: ScoringConfiguration | None = None) -> CtqResult:
    """Score a CTQ-SF answer set.

    Args:
        answers: question id (int or numeric string) -> raw response 1..5.
        config: scoring rules; defaults to the process-wide configuration.

    Returns:
        An immutable CtqResult. Identical inputs give identical results.
    """
    if config is None:
        config = get_scoring_config()
    scores = score_scales(answers, config)

    scales = {
        scale: ScaleResult(
            score=scores[scale],
            severity=classify_severity(scores[scale], config.severity_cutoffs[scale]),
            positive=is_positive(scores[scale], config.positive_cutoffs[scale]),
        )
        for scale in config.clinical_scales
    }
    result = CtqResult(
        scales=MappingProxyType(scales),
        minimization_score=scores[AUXILIARY_SCALE],
        total_score=sum(r.score for r in scales.values()),
        rules_version=config.version,
    )
    logger.info(
        f"Calculated CTQ scores (rules {config.version}): total={result.total_score}, "
        f"minimization={result.minimization_score}, highest_severity={result.highest_severity.value}"
    )
    return result
