"""Simplified total-score path behind ``POST /api/quiz/submit``.

This path sums the raw option values of every submitted answer and bands the
total into Low / Medium / High. It applies no reverse coding and no scale
separation, so its category can disagree with the per-scale CTQ result from
services.quiz.ctq for the same answers. Both paths are kept on purpose; do not
route one through the other.
"""
import logging
from typing import Any, Iterable, Mapping

from sqlalchemy.orm import Session

from services.quiz import models
from services.quiz.schemas import QuizSubmission

logger = logging.getLogger(__name__)

# (min_score, max_score) inclusive; None means unbounded
TOTAL_SCORE_BANDS = [
    (models.ResultCategory.low, 0, 3),
    (models.ResultCategory.medium, 4, 7),
    (models.ResultCategory.high, 8, None),
]


def resolve_option_values(db: Session, option_ids: Iterable[str]) -> dict[str, Any]:
    ids = list(option_ids)
    rows = (
        db.query(models.AnswerOption.id, models.AnswerOption.value)
        .filter(models.AnswerOption.id.in_(ids))
        .all()
    )
    value_map = {row.id: row.value for row in rows}
    if len(value_map) != len(set(ids)):
        missing = sorted(set(ids) - set(value_map))
        logger.warning(f"Not all selected options found in store: missing={missing}")
    return value_map


def _to_int(raw: Any) -> int | None:
    if isinstance(raw, bool):
        return None
    try:
        return int(raw)
    except (TypeError, ValueError):
        return None


def total_score(option_ids: Iterable[str], value_map: Mapping[str, Any]) -> int:
    score = 0
    for option_id in option_ids:
        value = _to_int(value_map.get(option_id))
        if value is None:
            logger.warning(
                f"Score could not be parsed for option {option_id} (raw value: {value_map.get(option_id)!r}); skipping"
            )
            continue
        score += value
    return score


def categorize_total(score: int) -> models.ResultCategory:
    for category, low, high in TOTAL_SCORE_BANDS:
        if score >= low and (high is None or score <= high):
            return category
    return models.ResultCategory.unknown


def score_submission(db: Session, payload: QuizSubmission) -> tuple[int, models.ResultCategory]:
    """Score a submission with the simplified total-band rules.

    Returns:
        (score, result_category)
    """
    option_ids = [str(a.selected_option_id) for a in payload.answers or []]
    value_map = resolve_option_values(db, option_ids)
    score = total_score(option_ids, value_map)
    category = categorize_total(score)
    logger.info(f"Quiz {payload.quizId} submission scored {score} ({category.value})")
    return score, category
