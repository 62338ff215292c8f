"""CTQ-SF scoring rule tables.

Scale membership, reverse-coded items, severity cutoffs and positive cutoffs
live in one versioned JSON document. Nothing else in the service hard-codes
them; corrections to the scoring rules are made in that file only.

The document is validated when loaded. An invalid table (an item owned by two
scales, cutoffs out of order, a scale without cutoffs) raises
ScoringConfigError so the service refuses to start instead of producing
wrong scores.
"""
import json
import logging
import os
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Mapping

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator, model_validator

from services.quiz.models import CtqScale

logger = logging.getLogger(__name__)

DEFAULT_RULES_PATH = Path(__file__).with_name("ctq_sf_v1.json")

CLINICAL_SCALES: tuple[CtqScale, ...] = (
    CtqScale.emotional_abuse,
    CtqScale.physical_abuse,
    CtqScale.sexual_abuse,
    CtqScale.emotional_neglect,
    CtqScale.physical_neglect,
)
AUXILIARY_SCALE = CtqScale.minimization_denial


class ScoringConfigError(ValueError):
    """Raised when a scoring rule table violates an integrity constraint."""


class SeverityCutoffs(BaseModel):
    """Inclusive lower bounds of the Low, Moderate and Severe bands."""

    model_config = ConfigDict(frozen=True)

    low: int
    moderate: int
    severe: int

    @model_validator(mode="after")
    def _check_order(self):
        if self.low < 0 or not (self.low < self.moderate < self.severe):
            raise ValueError(
                f"severity cutoffs must satisfy 0 <= low < moderate < severe "
                f"(got {self.low}/{self.moderate}/{self.severe})"
            )
        return self


class ScoringConfiguration(BaseModel):
    model_config = ConfigDict(frozen=True)

    version: str
    scales: Mapping[CtqScale, tuple[int, ...]]
    reverse_coded: frozenset[int]
    severity_cutoffs: Mapping[CtqScale, SeverityCutoffs]
    positive_cutoffs: Mapping[CtqScale, int]

    # The cached instance is shared process-wide; its tables are read-only views.
    @field_validator("scales", "severity_cutoffs", "positive_cutoffs", mode="after")
    @classmethod
    def _read_only(cls, value):
        return MappingProxyType(dict(value))

    @model_validator(mode="after")
    def _check_integrity(self):
        missing = set(CtqScale) - set(self.scales)
        if missing:
            raise ValueError(f"scales missing from rule table: {sorted(s.value for s in missing)}")

        owner: dict[int, CtqScale] = {}
        for scale, items in self.scales.items():
            if not items:
                raise ValueError(f"scale {scale.value} has no items")
            for q_id in items:
                if q_id in owner:
                    raise ValueError(f"item {q_id} claimed by both {owner[q_id].value} and {scale.value}")
                owner[q_id] = scale

        clinical = set(CLINICAL_SCALES)
        for name, table in (("severity_cutoffs", self.severity_cutoffs), ("positive_cutoffs", self.positive_cutoffs)):
            if set(table) != clinical:
                extra = sorted(s.value for s in set(table) - clinical)
                absent = sorted(s.value for s in clinical - set(table))
                raise ValueError(f"{name} must cover exactly the clinical scales (missing={absent}, unexpected={extra})")

        for scale, cutoff in self.positive_cutoffs.items():
            if cutoff < 0:
                raise ValueError(f"positive cutoff for {scale.value} must be non-negative")

        stray = sorted(q for q in self.reverse_coded if owner.get(q) not in clinical)
        if stray:
            raise ValueError(f"reverse-coded items not owned by a clinical scale: {stray}")
        return self

    @property
    def clinical_scales(self) -> tuple[CtqScale, ...]:
        return CLINICAL_SCALES

    @property
    def question_ids(self) -> list[int]:
        return sorted(q for items in self.scales.values() for q in items)

    def scale_for(self, question_id: int) -> CtqScale | None:
        for scale, items in self.scales.items():
            if question_id in items:
                return scale
        return None

    def is_reverse_coded(self, question_id: int) -> bool:
        return question_id in self.reverse_coded


def build_scoring_config(data: dict) -> ScoringConfiguration:
    try:
        return ScoringConfiguration.model_validate(data)
    except ValidationError as e:
        raise ScoringConfigError(f"Invalid CTQ scoring rules: {e}") from e


def load_scoring_config(path: str | Path | None = None) -> ScoringConfiguration:
    """Load and validate a rule table.

    Args:
        path: JSON document to read. Defaults to ``CTQ_SCORING_RULES_PATH``
            or the packaged ``ctq_sf_v1.json``.

    Raises:
        ScoringConfigError: the document is unreadable or fails validation.
    """
    rules_path = Path(path or os.getenv("CTQ_SCORING_RULES_PATH") or DEFAULT_RULES_PATH)
    try:
        with rules_path.open("r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ScoringConfigError(f"Cannot read CTQ scoring rules from {rules_path}: {e}") from e

    config = build_scoring_config(data)
    logger.info(f"Loaded CTQ scoring rules {config.version} from {rules_path}")
    return config


@lru_cache(maxsize=1)
def get_scoring_config() -> ScoringConfiguration:
    return load_scoring_config()
