"""
Test scoring.

A test is made of subskala (scored sub-dimensions). Each answer carries the
numeric value of the option the user picked; values are summed per subskala
and every total is bucketed into one of three bands defined on the subskala:

    score >= min_value3  -> band 3 (Abnormal)
    score >= min_value2  -> band 2 (Borderline)
    otherwise            -> band 1 (Normal)

Band boundaries must be ordered and non-overlapping, which ``validate_bands``
enforces at authoring time.
"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Dict, Iterable, List, Mapping, Optional, Protocol, Tuple

from app.core.validators import calculate_age

logger = logging.getLogger(__name__)

BAND_LABELS = ("Normal", "Borderline", "Abnormal")

__all__ = [
    "BAND_LABELS",
    "BandDefinition",
    "SubskalaScore",
    "age_in_range",
    "aggregate_scores",
    "calculate_age",
    "categorize_score",
    "score_subskala",
    "validate_bands",
]


class BandDefinition(Protocol):
    """Anything exposing the three band thresholds of a subskala."""

    label1: str
    description1: str
    min_value2: int
    label2: str
    description2: str
    min_value3: int
    label3: str
    description3: str


@dataclass
class SubskalaScore:
    """Scored and categorized total for one subskala."""

    subskala_id: int
    name: str
    score: int
    category: str
    description: str


def categorize_score(score: int, subskala: BandDefinition) -> Tuple[str, str]:
    """
    Bucket a subskala total into its band.

    Returns:
        Tuple of (label, description) of the matching band
    """
    if score >= subskala.min_value3:
        return subskala.label3, subskala.description3
    if score >= subskala.min_value2:
        return subskala.label2, subskala.description2
    return subskala.label1, subskala.description1


def aggregate_scores(
    answers: Iterable[Tuple[int, int]],
    question_subskala: Mapping[int, int],
) -> Dict[int, int]:
    """
    Sum answer values per subskala.

    Args:
        answers: (question_id, value) pairs as submitted
        question_subskala: Mapping of question id to its subskala id

    Returns:
        Mapping of subskala id to total score. Answers referring to questions
        not in ``question_subskala`` are skipped.
    """
    totals: Dict[int, int] = {}
    for question_id, value in answers:
        subskala_id = question_subskala.get(question_id)
        if subskala_id is None:
            logger.debug(f"Skipping answer for unknown question {question_id}")
            continue
        totals[subskala_id] = totals.get(subskala_id, 0) + value
    return totals


def score_subskala(subskala, score: int) -> SubskalaScore:
    """Build the categorized result of one subskala total."""
    category, description = categorize_score(score, subskala)
    return SubskalaScore(
        subskala_id=subskala.id,
        name=subskala.name,
        score=score,
        category=category,
        description=description,
    )


def validate_bands(
    min_value1: int,
    max_value1: int,
    min_value2: int,
    max_value2: int,
    min_value3: int,
    max_value3: int,
) -> List[str]:
    """
    Check that the three bands are non-negative, ordered and disjoint.

    Returns:
        List of error messages; empty when the bands are valid
    """
    values = {
        "Min value 1": min_value1,
        "Max value 1": max_value1,
        "Min value 2": min_value2,
        "Max value 2": max_value2,
        "Min value 3": min_value3,
        "Max value 3": max_value3,
    }
    errors: List[str] = []
    for label, value in values.items():
        if not isinstance(value, int) or isinstance(value, bool) or value < 0:
            errors.append(f"{label} must be a non-negative integer")
    if errors:
        return errors

    if max_value1 < min_value1:
        errors.append("Max value 1 must be greater than or equal to min value 1")
    if min_value2 <= max_value1:
        errors.append("Min value 2 must be greater than max value 1")
    if max_value2 < min_value2:
        errors.append("Max value 2 must be greater than or equal to min value 2")
    if min_value3 <= max_value2:
        errors.append("Min value 3 must be greater than max value 2")
    if max_value3 < min_value3:
        errors.append("Max value 3 must be greater than or equal to min value 3")
    return errors


def age_in_range(
    date_of_birth: Optional[date], min_age: int, max_age: int, today: Optional[date] = None
) -> bool:
    """Whether a user born on ``date_of_birth`` falls in [min_age, max_age]."""
    if date_of_birth is None:
        return False
    age = calculate_age(date_of_birth, today)
    return min_age <= age <= max_age
