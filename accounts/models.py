from django.contrib.auth.models import AbstractUser
from django.db import models


class User(AbstractUser):
    class Role(models.TextChoices):
        SUPER_ADMIN = "SUPER_ADMIN", "Super Admin"
        SCHOOL_ADMIN = "SCHOOL_ADMIN", "School Admin"
        EXAM_OFFICER = "EXAM_OFFICER", "Exam Officer"
        TEACHER = "TEACHER", "Teacher"
        STUDENT = "STUDENT", "Student"
        PARENT = "PARENT", "Parent"

    # Roles allowed to enter, rank and publish results and to see drafts
    RESULT_MANAGER_ROLES = (
        Role.SUPER_ADMIN,
        Role.SCHOOL_ADMIN,
        Role.EXAM_OFFICER,
    )

    role = models.CharField(
        max_length=30,
        choices=Role.choices,
        null=True,  # allow blank for superuser creation
        blank=True,
        help_text="Select user role"
    )

    @property
    def can_manage_results(self):
        """
        Superusers and result managers may submit, rank and publish results,
        and may read results that are still in draft.
        """
        if self.is_superuser:
            return True
        return self.role in self.RESULT_MANAGER_ROLES

    def can_view_student(self, student):
        if self.can_manage_results:
            return True
        if self.role == self.Role.STUDENT:
            return student.user_id == self.pk
        if self.role == self.Role.PARENT:
            return student.guardians.filter(pk=self.pk).exists()
        return False
