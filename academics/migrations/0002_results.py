from django.conf import settings
import django.core.validators
from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ("academics", "0001_initial"),
        ("students", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Result",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("academic_year", models.CharField(help_text="e.g. 2024/2025", max_length=20)),
                ("term", models.CharField(choices=[("first", "First Term"), ("second", "Second Term"), ("third", "Third Term")], max_length=10)),
                ("total_score", models.FloatField(default=0)),
                ("average_score", models.FloatField(default=0)),
                ("overall_grade", models.CharField(blank=True, max_length=2)),
                ("position", models.PositiveIntegerField(blank=True, null=True)),
                ("total_students", models.PositiveIntegerField(default=0)),
                ("remarks", models.TextField(blank=True)),
                ("next_term_begins", models.DateField(blank=True, null=True)),
                ("entered_at", models.DateTimeField()),
                ("published", models.BooleanField(default=False, help_text="Only published results are visible to students and parents.")),
                ("published_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("entered_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="entered_results", to=settings.AUTH_USER_MODEL)),
                ("school_class", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="results", to="academics.schoolclass")),
                ("student", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="results", to="students.student")),
            ],
            options={
                "ordering": ["position", "-average_score"],
                "indexes": [models.Index(fields=["school_class", "academic_year", "term"], name="result_scope_idx")],
                "constraints": [models.UniqueConstraint(fields=("student", "school_class", "academic_year", "term"), name="one_result_per_student_term")],
            },
        ),
        migrations.CreateModel(
            name="SubjectResult",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("ca1", models.FloatField(help_text="Continuous Assessment 1 (0-20)", validators=[django.core.validators.MinValueValidator(0), django.core.validators.MaxValueValidator(20)])),
                ("ca2", models.FloatField(help_text="Continuous Assessment 2 (0-20)", validators=[django.core.validators.MinValueValidator(0), django.core.validators.MaxValueValidator(20)])),
                ("exam", models.FloatField(help_text="Exam score (0-60)", validators=[django.core.validators.MinValueValidator(0), django.core.validators.MaxValueValidator(60)])),
                ("total", models.FloatField(default=0, editable=False)),
                ("grade", models.CharField(default="F", editable=False, max_length=2)),
                ("remark", models.CharField(blank=True, editable=False, max_length=30)),
                ("subject_position", models.PositiveIntegerField(blank=True, null=True)),
                ("subject_highest", models.FloatField(blank=True, null=True)),
                ("result", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="subject_results", to="academics.result")),
                ("subject", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="subject_results", to="academics.subject")),
            ],
            options={
                "ordering": ["subject__name"],
                "unique_together": {("result", "subject")},
            },
        ),
    ]
