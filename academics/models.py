from django.conf import settings
from django.db import models
from django.core.validators import MinValueValidator, MaxValueValidator

from .grading import score_subject


# -------------------------
# Terms
# -------------------------
TERM_CHOICES = (
    ("first", "First Term"),
    ("second", "Second Term"),
    ("third", "Third Term"),
)


# -------------------------
# School Class
# -------------------------
class SchoolClass(models.Model):
    name = models.CharField(max_length=50, unique=True)  # e.g., JSS1, SS3
    is_active = models.BooleanField(default=True)

    class Meta:
        ordering = ["name"]
        verbose_name_plural = "School classes"

    def __str__(self):
        return self.name


# -------------------------
# Subject
# -------------------------
class Subject(models.Model):
    name = models.CharField(max_length=100)
    code = models.CharField(max_length=20, unique=True)
    description = models.TextField(blank=True)

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return f"{self.name} ({self.code})"


# -------------------------
# Result (one per student, class, year and term)
# -------------------------
class ResultQuerySet(models.QuerySet):
    def for_scope(self, school_class, academic_year, term):
        return self.filter(
            school_class=school_class,
            academic_year=academic_year,
            term=term,
        )

    def published(self):
        return self.filter(published=True)

    def drafts(self):
        return self.filter(published=False)


class Result(models.Model):
    student = models.ForeignKey(
        "students.Student",  # String reference avoids circular import
        on_delete=models.CASCADE,
        related_name="results"
    )
    school_class = models.ForeignKey(
        SchoolClass,
        on_delete=models.CASCADE,
        related_name="results"
    )
    academic_year = models.CharField(
        max_length=20,
        help_text="e.g. 2024/2025"
    )
    term = models.CharField(
        max_length=10,
        choices=TERM_CHOICES
    )

    # Computed from the subject rows on every submission
    total_score = models.FloatField(default=0)
    average_score = models.FloatField(default=0)
    overall_grade = models.CharField(max_length=2, blank=True)

    # Filled in by the ranking pass
    position = models.PositiveIntegerField(null=True, blank=True)
    total_students = models.PositiveIntegerField(default=0)

    remarks = models.TextField(blank=True)
    next_term_begins = models.DateField(null=True, blank=True)

    entered_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="entered_results"
    )
    entered_at = models.DateTimeField()

    published = models.BooleanField(
        default=False,
        help_text="Only published results are visible to students and parents."
    )
    published_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = ResultQuerySet.as_manager()

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["student", "school_class", "academic_year", "term"],
                name="one_result_per_student_term",
            )
        ]
        indexes = [
            models.Index(fields=["school_class", "academic_year", "term"], name="result_scope_idx"),
        ]
        ordering = ["position", "-average_score"]

    def __str__(self):
        return f"{self.student} - {self.academic_year} {self.term} ({self.average_score:.2f})"


# -------------------------
# Subject Result (per subject, owned by a Result)
# -------------------------
class SubjectResult(models.Model):
    result = models.ForeignKey(
        Result,
        on_delete=models.CASCADE,
        related_name="subject_results"
    )
    subject = models.ForeignKey(
        Subject,
        on_delete=models.PROTECT,
        related_name="subject_results"
    )

    ca1 = models.FloatField(
        validators=[MinValueValidator(0), MaxValueValidator(20)],
        help_text="Continuous Assessment 1 (0-20)"
    )
    ca2 = models.FloatField(
        validators=[MinValueValidator(0), MaxValueValidator(20)],
        help_text="Continuous Assessment 2 (0-20)"
    )
    exam = models.FloatField(
        validators=[MinValueValidator(0), MaxValueValidator(60)],
        help_text="Exam score (0-60)"
    )

    # Computed fields
    total = models.FloatField(default=0, editable=False)
    grade = models.CharField(max_length=2, default="F", editable=False)
    remark = models.CharField(max_length=30, blank=True, editable=False)

    # Subject position and highest in class, filled in by the ranking pass
    subject_position = models.PositiveIntegerField(null=True, blank=True)
    subject_highest = models.FloatField(null=True, blank=True)

    class Meta:
        unique_together = ("result", "subject")
        ordering = ["subject__name"]

    def save(self, *args, **kwargs):
        # The total is never taken from input; it always follows the components
        scored = score_subject(self.ca1, self.ca2, self.exam)
        self.ca1, self.ca2, self.exam = scored.ca1, scored.ca2, scored.exam
        self.total = scored.total
        self.grade = scored.grade
        self.remark = scored.remark
        super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.subject.name}: {self.total:g} ({self.grade})"


# -------------------------
# Class Term Info (one per ranking scope)
# -------------------------
class ClassTermInfo(models.Model):
    """
    Bookkeeping for one (class, academic year, term) scope.

    Writers lock this row before touching the scope's results, which keeps
    submissions, ranking passes and publishing for the same scope in sequence.
    ``ranked_at`` is cleared whenever a submission changes the scope.
    """
    school_class = models.ForeignKey(
        SchoolClass,
        on_delete=models.CASCADE,
        related_name="term_info"
    )
    academic_year = models.CharField(max_length=20)
    term = models.CharField(max_length=10, choices=TERM_CHOICES)

    class_population = models.PositiveIntegerField(default=0)
    ranked_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        unique_together = (
            "school_class",
            "academic_year",
            "term",
        )

    def __str__(self):
        return f"{self.school_class} - {self.term} ({self.academic_year})"

    @property
    def is_ranked(self):
        return self.ranked_at is not None
