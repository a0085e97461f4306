import pytest
from django.contrib.admin.sites import AdminSite

from academics import services
from academics.admin import ResultAdmin
from academics.models import ClassTermInfo, Result
from conftest import YEAR, marks


pytestmark = pytest.mark.django_db


@pytest.fixture
def result_admin():
    return ResultAdmin(Result, AdminSite())


def test_result_scope_is_read_only(result_admin):
    readonly = result_admin.get_readonly_fields(request=None)

    for field in ("student", "school_class", "academic_year", "term"):
        assert field in readonly


def test_admin_delete_marks_the_scope_for_reranking(result_admin, make_student, school_class, maths):
    kept = services.submit_results(make_student(), school_class, YEAR, "first", [marks(maths, 20, 20, 50)])
    dropped = services.submit_results(make_student(), school_class, YEAR, "first", [marks(maths, 10, 10, 30)])
    services.rank_class(school_class, YEAR, "first")

    result_admin.delete_queryset(None, Result.objects.filter(pk=dropped.pk))

    assert list(Result.objects.values_list("pk", flat=True)) == [kept.pk]
    assert not ClassTermInfo.objects.get(school_class=school_class).is_ranked


def test_admin_delete_single_result(result_admin, student, school_class, maths):
    result = services.submit_results(student, school_class, YEAR, "first", [marks(maths, 10, 10, 30)])
    services.rank_class(school_class, YEAR, "first")

    result_admin.delete_model(None, result)

    assert not Result.objects.exists()
    assert not ClassTermInfo.objects.get(school_class=school_class).is_ranked
