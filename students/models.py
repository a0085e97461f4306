# students/models.py

from django.conf import settings
from django.db import models
from academics.models import SchoolClass


class Student(models.Model):
    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="student_profile"
    )
    school_class = models.ForeignKey(
        SchoolClass,
        on_delete=models.PROTECT,
        related_name="students"
    )
    guardians = models.ManyToManyField(
        settings.AUTH_USER_MODEL,
        blank=True,
        related_name="wards",
        help_text="Parent accounts allowed to see this student's published results"
    )

    first_name = models.CharField(max_length=50)
    last_name = models.CharField(max_length=50)
    middle_name = models.CharField(max_length=50, blank=True, null=True)

    admission_number = models.CharField(
        max_length=30,
        unique=True
    )

    is_active = models.BooleanField(default=True)
    date_created = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["last_name", "first_name"]

    @property
    def full_name(self):
        names = [self.last_name, self.first_name, self.middle_name]
        return " ".join(n for n in names if n)

    def __str__(self):
        return f"{self.last_name} {self.first_name} ({self.admission_number})"
