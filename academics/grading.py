"""
Grading key for subject and overall results.

One band table is used for both the per-subject total and the overall
average, so a score always earns the same letter wherever it is graded.
"""
from collections import namedtuple

from django.conf import settings
from django.core.exceptions import ValidationError


GradeBand = namedtuple("GradeBand", ["min_score", "grade", "remark"])
SubjectScore = namedtuple("SubjectScore", ["ca1", "ca2", "exam", "total", "grade", "remark"])
Aggregate = namedtuple("Aggregate", ["total_score", "average_score", "overall_grade"])

MIN_SCORE = 0
MAX_SCORE = 100

# Inclusive lower bounds, highest band first
GRADE_BANDS = (
    GradeBand(90, "A+", "Outstanding"),
    GradeBand(80, "A", "Excellent"),
    GradeBand(70, "B+", "Very Good"),
    GradeBand(60, "B", "Good"),
    GradeBand(50, "C", "Fair"),
    GradeBand(40, "D", "Pass"),
    GradeBand(0, "F", "Needs Improvement"),
)

# Component caps: CA1 + CA2 + Exam = 100
COMPONENT_LIMITS = (
    ("ca1", "CA1", 20),
    ("ca2", "CA2", 20),
    ("exam", "Exam", 60),
)


def get_grade_bands():
    """Band table in force, allowing ``RESULTS_GRADE_BANDS`` to replace the default."""
    configured = getattr(settings, "RESULTS_GRADE_BANDS", None)
    if not configured:
        return GRADE_BANDS
    bands = sorted(
        (GradeBand(*band) for band in configured),
        key=lambda band: band.min_score,
        reverse=True,
    )
    if bands[-1].min_score != MIN_SCORE:
        raise ValueError("RESULTS_GRADE_BANDS must include a band starting at 0")
    return tuple(bands)


def resolve_grade(score, bands=None):
    """
    Map a score in [0, 100] to its band.

    Scores outside the range are a caller error; they are rejected rather
    than clamped into the nearest band.
    """
    if bands is None:
        bands = get_grade_bands()
    if not (MIN_SCORE <= score <= MAX_SCORE):
        raise ValidationError(
            "Score %(score)s is outside the gradable range %(low)s-%(high)s.",
            code="out_of_range",
            params={"score": score, "low": MIN_SCORE, "high": MAX_SCORE},
        )
    for band in bands:
        if score >= band.min_score:
            return band
    # Unreachable with a table whose last band starts at 0
    raise ValueError(f"No grade band covers {score}")


def _clean_component(value, field, label, maximum):
    if isinstance(value, bool):
        value = None
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(
            {field: ValidationError(
                "%(label)s must be a number between 0 and %(max)s.",
                code="invalid",
                params={"label": label, "max": maximum},
            )}
        )
    # NaN fails both comparisons and is rejected here too
    if not (0 <= number <= maximum):
        raise ValidationError(
            {field: ValidationError(
                "%(label)s must be between 0 and %(max)s (got %(value)s).",
                code="out_of_range",
                params={"label": label, "max": maximum, "value": value},
            )}
        )
    return number


def score_subject(ca1, ca2, exam, bands=None):
    """Validate the three components and grade their total."""
    values = {"ca1": ca1, "ca2": ca2, "exam": exam}
    cleaned = {
        field: _clean_component(values[field], field, label, maximum)
        for field, label, maximum in COMPONENT_LIMITS
    }
    total = cleaned["ca1"] + cleaned["ca2"] + cleaned["exam"]
    band = resolve_grade(total, bands)
    return SubjectScore(
        ca1=cleaned["ca1"],
        ca2=cleaned["ca2"],
        exam=cleaned["exam"],
        total=total,
        grade=band.grade,
        remark=band.remark,
    )


def aggregate_scores(scores, bands=None):
    """Total, average and overall grade over a non-empty set of subject scores."""
    scores = list(scores)
    if not scores:
        raise ValidationError("No subjects submitted.", code="empty")
    total_score = sum(score.total for score in scores)
    average_score = total_score / len(scores)
    return Aggregate(
        total_score=total_score,
        average_score=average_score,
        overall_grade=resolve_grade(average_score, bands).grade,
    )
