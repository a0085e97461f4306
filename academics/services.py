import logging
from collections.abc import Mapping
from functools import wraps

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import DatabaseError, transaction
from django.db.models import Avg, Count, Max, Min, Q
from django.utils import timezone

from students.models import Student
from .exceptions import InvalidStateError, NotFoundError, StorageError
from .grading import aggregate_scores, score_subject
from .models import TERM_CHOICES, ClassTermInfo, Result, SchoolClass, Subject, SubjectResult
from .ranking import rank_by

logger = logging.getLogger(__name__)

VALID_TERMS = [value for value, _ in TERM_CHOICES]
DEFAULT_PASS_MARK = 40


def storage_errors(func):
    """Re-raise database failures as StorageError. Nothing is retried."""
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except DatabaseError as exc:
            logger.warning(f"Storage failure during {func.__name__}: {exc}")
            raise StorageError(f"{func.__name__} failed: {exc}") from exc
    return wrapper


# -------------------------
# Lookups and input checks
# -------------------------
def _get_instance(model, value, label):
    if isinstance(value, model):
        return value
    # bool and float would otherwise be coerced to an integer key
    if isinstance(value, (bool, float)):
        field = f"{label.lower()}_id"
        raise ValidationError({
            field: ValidationError(
                "%(label)s id must be an integer (got %(value)r).",
                code="invalid",
                params={"label": label, "value": value},
            )
        })
    try:
        return model.objects.get(pk=value)
    except (model.DoesNotExist, ValueError, TypeError):
        raise NotFoundError(f"{label} {value!r} does not exist.")


def _clean_term(term):
    if term not in VALID_TERMS:
        raise ValidationError({
            "term": ValidationError(
                "Term must be one of %(choices)s (got %(term)r).",
                code="invalid_choice",
                params={"choices": ", ".join(VALID_TERMS), "term": term},
            )
        })
    return term


def _clean_academic_year(academic_year):
    # Free-form (e.g. "2024/2025"); only its presence is checked
    if not academic_year:
        raise ValidationError({
            "academic_year": ValidationError("Academic year is required.", code="required")
        })
    return academic_year


def _score_marks(subject_marks):
    """
    Resolve and grade every submitted subject before anything is written,
    so a single bad mark rejects the whole submission.
    """
    subject_marks = list(subject_marks or [])
    if not subject_marks:
        raise ValidationError({
            "subjects": ValidationError("No subjects submitted.", code="empty")
        })

    scored = []
    seen = set()
    for mark in subject_marks:
        if not isinstance(mark, Mapping):
            raise ValidationError({
                "subjects": ValidationError(
                    "Each subject entry must provide subject_id, ca1, ca2 and exam.",
                    code="invalid",
                )
            })
        subject = _get_instance(Subject, mark.get("subject_id", mark.get("subject")), "Subject")
        if subject.pk in seen:
            raise ValidationError({
                "subjects": ValidationError(
                    "%(subject)s was submitted more than once.",
                    code="duplicate",
                    params={"subject": subject.name},
                )
            })
        seen.add(subject.pk)

        try:
            score = score_subject(mark.get("ca1"), mark.get("ca2"), mark.get("exam"))
        except ValidationError as exc:
            raise ValidationError({
                field: [f"{subject.name}: {message}" for message in messages]
                for field, messages in exc.message_dict.items()
            }) from exc
        scored.append((subject, score))

    return scored


def _lock_scope(school_class, academic_year, term):
    """Take the per-scope lock. Must be called inside transaction.atomic()."""
    info, _ = ClassTermInfo.objects.get_or_create(
        school_class=school_class,
        academic_year=academic_year,
        term=term,
    )
    return ClassTermInfo.objects.select_for_update().get(pk=info.pk)


# -------------------------
# Result Aggregator
# -------------------------
@storage_errors
def submit_results(student, school_class, academic_year, term, subject_marks, *,
                   entered_by=None, remarks=None, next_term_begins=None, rank=False):
    """
    Create or fully replace the result for (student, class, year, term).

    ``subject_marks`` is a list of mappings with ``subject_id``, ``ca1``,
    ``ca2`` and ``exam``. A resubmission replaces every subject row; the
    publish state and publish time of an existing result are kept.
    Positions are left to ``rank_class`` unless ``rank`` is true.
    """
    term = _clean_term(term)
    academic_year = _clean_academic_year(academic_year)
    student = _get_instance(Student, student, "Student")
    school_class = _get_instance(SchoolClass, school_class, "Class")
    scored = _score_marks(subject_marks)
    aggregate = aggregate_scores(score for _, score in scored)

    with transaction.atomic():
        info = _lock_scope(school_class, academic_year, term)

        result = (
            Result.objects.select_for_update()
            .filter(
                student=student,
                school_class=school_class,
                academic_year=academic_year,
                term=term,
            )
            .first()
        )
        created = result is None
        if created:
            result = Result(
                student=student,
                school_class=school_class,
                academic_year=academic_year,
                term=term,
            )

        result.total_score = aggregate.total_score
        result.average_score = aggregate.average_score
        result.overall_grade = aggregate.overall_grade
        if remarks is not None:
            result.remarks = remarks
        if next_term_begins is not None:
            result.next_term_begins = next_term_begins
        result.entered_by = entered_by
        result.entered_at = timezone.now()
        result.save()

        result.subject_results.all().delete()
        for subject, score in scored:
            SubjectResult.objects.create(
                result=result,
                subject=subject,
                ca1=score.ca1,
                ca2=score.ca2,
                exam=score.exam,
            )

        info.ranked_at = None
        info.save(update_fields=["ranked_at"])

    logger.info(
        f"{'Created' if created else 'Replaced'} result {result.pk} for student {student.pk} "
        f"in {school_class} {academic_year} {term}: {len(scored)} subjects, "
        f"average {aggregate.average_score:.2f} ({aggregate.overall_grade})"
    )

    if rank:
        rank_class(school_class, academic_year, term)
        result.refresh_from_db()
    return result


# -------------------------
# Class Rank Calculator
# -------------------------
def _rank_subjects(results):
    rows_by_subject = {}
    for row in SubjectResult.objects.filter(result__in=results):
        rows_by_subject.setdefault(row.subject_id, []).append(row)

    updated = []
    for rows in rows_by_subject.values():
        highest = max(row.total for row in rows)
        for row, position in rank_by(rows, key=lambda row: row.total):
            row.subject_position = position
            row.subject_highest = highest
            updated.append(row)

    SubjectResult.objects.bulk_update(updated, ["subject_position", "subject_highest"])


@storage_errors
def rank_class(school_class, academic_year, term):
    """
    Assign class positions for a scope by average score.

    Ties share a position and the next distinct average skips ahead by the
    size of the tie (90, 85, 85, 70 -> 1, 2, 2, 4). Every result in scope
    gets ``total_students``. An empty scope is a no-op. Returns the number
    of results ranked.
    """
    term = _clean_term(term)
    academic_year = _clean_academic_year(academic_year)
    school_class = _get_instance(SchoolClass, school_class, "Class")

    with transaction.atomic():
        info = _lock_scope(school_class, academic_year, term)

        results = list(
            Result.objects.select_for_update()
            .for_scope(school_class, academic_year, term)
            .order_by("pk")
        )
        total_students = len(results)

        if results:
            for result, position in rank_by(results, key=lambda result: result.average_score):
                result.position = position
                result.total_students = total_students
            Result.objects.bulk_update(results, ["position", "total_students"])
            _rank_subjects(results)

        info.class_population = total_students
        info.ranked_at = timezone.now()
        info.save(update_fields=["class_population", "ranked_at"])

    logger.info(f"Ranked {total_students} results in {school_class} {academic_year} {term}")
    return total_students


# -------------------------
# Publish State Machine
# -------------------------
@storage_errors
def publish_result(result_id):
    """
    Move one result from draft to published.

    Publishing is one-way. Publishing a result that is already published
    raises InvalidStateError; the original ``published_at`` is kept.
    """
    pk = getattr(result_id, "pk", result_id)

    with transaction.atomic():
        try:
            result = Result.objects.select_for_update().get(pk=pk)
        except (Result.DoesNotExist, ValueError, TypeError):
            raise NotFoundError(f"Result {pk!r} does not exist.")

        if result.published:
            raise InvalidStateError(
                f"Result {result.pk} was already published at {result.published_at:%Y-%m-%d %H:%M}."
            )

        result.published = True
        result.published_at = timezone.now()
        result.save(update_fields=["published", "published_at", "updated_at"])

    logger.info(f"Published result {result.pk} for student {result.student_id}")
    return result


@storage_errors
def delete_result(result_id):
    """Delete a result and mark its scope for re-ranking."""
    pk = getattr(result_id, "pk", result_id)

    with transaction.atomic():
        try:
            result = Result.objects.select_related("school_class").get(pk=pk)
        except (Result.DoesNotExist, ValueError, TypeError):
            raise NotFoundError(f"Result {pk!r} does not exist.")

        info = _lock_scope(result.school_class, result.academic_year, result.term)
        result.delete()
        info.ranked_at = None
        info.save(update_fields=["ranked_at"])

    logger.info(
        f"Deleted result {pk} for student {result.student_id} "
        f"in {result.school_class} {result.academic_year} {result.term}"
    )


@storage_errors
def publish_batch(school_class, academic_year, term):
    """Publish every draft in the scope; already published results are left as they are."""
    term = _clean_term(term)
    academic_year = _clean_academic_year(academic_year)
    school_class = _get_instance(SchoolClass, school_class, "Class")

    with transaction.atomic():
        _lock_scope(school_class, academic_year, term)
        now = timezone.now()
        published_count = (
            Result.objects.for_scope(school_class, academic_year, term)
            .drafts()
            .update(published=True, published_at=now, updated_at=now)
        )

    logger.info(f"Published {published_count} results in {school_class} {academic_year} {term}")
    return published_count


@storage_errors
def publish_class_results(school_class, academic_year, term):
    """Rank the scope if it changed since the last ranking pass, then publish its drafts."""
    term = _clean_term(term)
    academic_year = _clean_academic_year(academic_year)
    school_class = _get_instance(SchoolClass, school_class, "Class")

    with transaction.atomic():
        info = _lock_scope(school_class, academic_year, term)
        if not info.is_ranked:
            rank_class(school_class, academic_year, term)
        return publish_batch(school_class, academic_year, term)


# -------------------------
# Read side
# -------------------------
@storage_errors
def get_student_result(student, academic_year, term, *, privileged=False):
    """
    The student's result for a year and term. Callers without privileges
    only ever see published results; a draft looks the same as no result.
    """
    term = _clean_term(term)
    academic_year = _clean_academic_year(academic_year)
    student = _get_instance(Student, student, "Student")

    results = Result.objects.filter(student=student, academic_year=academic_year, term=term)
    if not privileged:
        results = results.published()
    result = (
        results.select_related("school_class", "entered_by")
        .prefetch_related("subject_results__subject")
        .order_by("-entered_at")
        .first()
    )
    if result is None:
        raise NotFoundError(
            f"No result for student {student.pk} in {academic_year} {term}."
        )
    return result


@storage_errors
def list_results(school_class, academic_year, term, published=None):
    term = _clean_term(term)
    academic_year = _clean_academic_year(academic_year)
    school_class = _get_instance(SchoolClass, school_class, "Class")

    results = Result.objects.for_scope(school_class, academic_year, term)
    if published is not None:
        results = results.filter(published=published)
    return list(
        results.select_related("student")
        .order_by("position", "-average_score", "student__last_name")
    )


@storage_errors
def search_results(*, academic_year=None, term=None, school_class=None, published=None):
    """Results across scopes, narrowed by whichever filters are given."""
    results = Result.objects.all()
    if academic_year:
        results = results.filter(academic_year=academic_year)
    if term:
        results = results.filter(term=_clean_term(term))
    if school_class is not None:
        results = results.filter(school_class=_get_instance(SchoolClass, school_class, "Class"))
    if published is not None:
        results = results.filter(published=published)
    return list(
        results.select_related("student", "school_class")
        .order_by("position", "-average_score", "pk")
    )


@storage_errors
def student_results(student, *, academic_year=None, term=None, privileged=False):
    """
    Every result a student has, newest year and term first. Non-privileged
    callers only see published results.
    """
    student = _get_instance(Student, student, "Student")

    results = Result.objects.filter(student=student)
    if academic_year:
        results = results.filter(academic_year=academic_year)
    if term:
        results = results.filter(term=_clean_term(term))
    if not privileged:
        results = results.published()
    # Term values sort as first < second < third
    return list(
        results.select_related("school_class")
        .prefetch_related("subject_results__subject")
        .order_by("-academic_year", "-term")
    )


@storage_errors
def get_result(result_id):
    pk = getattr(result_id, "pk", result_id)
    try:
        return (
            Result.objects.select_related("student", "school_class", "entered_by")
            .prefetch_related("subject_results__subject")
            .get(pk=pk)
        )
    except (Result.DoesNotExist, ValueError, TypeError):
        raise NotFoundError(f"Result {pk!r} does not exist.")


@storage_errors
def class_summary(school_class, academic_year, term):
    """Class performance for a scope: spread of averages and pass rate."""
    term = _clean_term(term)
    academic_year = _clean_academic_year(academic_year)
    school_class = _get_instance(SchoolClass, school_class, "Class")
    pass_mark = getattr(settings, "RESULTS_PASS_MARK", DEFAULT_PASS_MARK)

    stats = Result.objects.for_scope(school_class, academic_year, term).aggregate(
        result_count=Count("id"),
        mean_average=Avg("average_score"),
        highest=Max("average_score"),
        lowest=Min("average_score"),
        pass_count=Count("id", filter=Q(average_score__gte=pass_mark)),
    )

    total_students = stats["result_count"]
    pass_count = stats["pass_count"]
    if not total_students:
        return {
            "total_students": 0,
            "average_score": 0,
            "highest_score": 0,
            "lowest_score": 0,
            "pass_count": 0,
            "fail_count": 0,
            "pass_rate": 0,
        }

    return {
        "total_students": total_students,
        "average_score": stats["mean_average"],
        "highest_score": stats["highest"],
        "lowest_score": stats["lowest"],
        "pass_count": pass_count,
        "fail_count": total_students - pass_count,
        "pass_rate": pass_count / total_students * 100,
    }
