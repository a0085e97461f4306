import pytest

from academics.models import SchoolClass, Subject
from accounts.models import User
from students.models import Student


YEAR = "2024/2025"


@pytest.fixture
def school_class(db):
    return SchoolClass.objects.create(name="JSS2")


@pytest.fixture
def other_class(db):
    return SchoolClass.objects.create(name="JSS3")


@pytest.fixture
def maths(db):
    return Subject.objects.create(name="Mathematics", code="MTH")


@pytest.fixture
def english(db):
    return Subject.objects.create(name="English Language", code="ENG")


@pytest.fixture
def exam_officer(db):
    return User.objects.create_user(
        username="officer", password="pass12345", role=User.Role.EXAM_OFFICER
    )


@pytest.fixture
def make_student(db, school_class):
    counter = {"n": 0}

    def make(first_name="Ada", last_name=None, school_class=school_class, **kwargs):
        counter["n"] += 1
        return Student.objects.create(
            first_name=first_name,
            last_name=last_name or f"Student{counter['n']}",
            admission_number=f"ADM/{counter['n']:04d}",
            school_class=school_class,
            **kwargs,
        )

    return make


@pytest.fixture
def student(make_student):
    return make_student(first_name="Sade", last_name="Bello")


def marks(subject, ca1, ca2, exam):
    return {"subject_id": subject.pk, "ca1": ca1, "ca2": ca2, "exam": exam}
