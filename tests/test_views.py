import json

import pytest
from django.urls import reverse

from academics import services
from academics.models import Result
from accounts.models import User
from conftest import YEAR, marks


pytestmark = pytest.mark.django_db


def post_json(client, url, data):
    return client.post(url, data=json.dumps(data), content_type="application/json")


@pytest.fixture
def officer_client(client, exam_officer):
    client.force_login(exam_officer)
    return client


@pytest.fixture
def submission(student, school_class, maths, english):
    return {
        "student_id": student.pk,
        "class_id": school_class.pk,
        "academic_year": YEAR,
        "term": "second",
        "subjects": [marks(maths, 18, 17, 50), marks(english, 16, 15, 47)],
        "remarks": "A good term",
    }


def test_submit_results(officer_client, submission, exam_officer):
    response = post_json(officer_client, reverse("academics:submit_results"), submission)

    assert response.status_code == 200
    result = response.json()["result"]
    assert result["total_score"] == 163
    assert result["average_score"] == 81.5
    assert result["overall_grade"] == "A"
    assert result["published"] is False
    assert [s["grade"] for s in result["subjects"]] == ["B+", "A"]  # English, Mathematics
    assert Result.objects.get().entered_by == exam_officer


def test_submit_rejects_out_of_range_marks(officer_client, submission, maths):
    submission["subjects"] = [marks(maths, 21, 10, 40)]

    response = post_json(officer_client, reverse("academics:submit_results"), submission)

    assert response.status_code == 400
    assert "ca1" in response.json()["detail"]
    assert not Result.objects.exists()


def test_submit_rejects_malformed_json(officer_client):
    response = officer_client.post(
        reverse("academics:submit_results"), data="{not json", content_type="application/json"
    )

    assert response.status_code == 400


def test_submit_unknown_student_is_404(officer_client, submission):
    submission["student_id"] = 9999

    response = post_json(officer_client, reverse("academics:submit_results"), submission)

    assert response.status_code == 404


def test_teachers_cannot_submit(client, submission):
    teacher = User.objects.create_user(username="teacher", password="pass12345", role=User.Role.TEACHER)
    client.force_login(teacher)

    response = post_json(client, reverse("academics:submit_results"), submission)

    assert response.status_code == 403


def test_anonymous_users_are_sent_to_login(client, submission):
    response = post_json(client, reverse("academics:submit_results"), submission)

    assert response.status_code == 302


def test_publish_result_then_conflict(officer_client, student, school_class, maths):
    result = services.submit_results(student, school_class, YEAR, "first", [marks(maths, 10, 10, 30)])
    url = reverse("academics:publish_result", args=[result.pk])

    assert officer_client.post(url).status_code == 200
    assert officer_client.post(url).status_code == 409


def test_publish_missing_result_is_404(officer_client):
    response = officer_client.post(reverse("academics:publish_result", args=[4242]))

    assert response.status_code == 404


def test_publish_class_results(officer_client, make_student, school_class, maths):
    services.submit_results(make_student(), school_class, YEAR, "first", [marks(maths, 10, 10, 30)])
    services.submit_results(make_student(), school_class, YEAR, "first", [marks(maths, 20, 20, 50)])

    response = post_json(officer_client, reverse("academics:publish_class_results"), {
        "class_id": school_class.pk, "academic_year": YEAR, "term": "first",
    })

    assert response.status_code == 200
    assert response.json()["published_count"] == 2
    assert sorted(Result.objects.values_list("position", flat=True)) == [1, 2]


def test_rank_class(officer_client, make_student, school_class, maths):
    services.submit_results(make_student(), school_class, YEAR, "first", [marks(maths, 20, 20, 50)])
    services.submit_results(make_student(), school_class, YEAR, "first", [marks(maths, 20, 20, 50)])

    response = post_json(officer_client, reverse("academics:rank_class"), {
        "class_id": school_class.pk, "academic_year": YEAR, "term": "first",
    })

    assert response.status_code == 200
    assert [r["position"] for r in response.json()["results"]] == [1, 1]


def test_rank_class_with_bad_term_is_400(officer_client, school_class):
    response = post_json(officer_client, reverse("academics:rank_class"), {
        "class_id": school_class.pk, "academic_year": YEAR, "term": "summer",
    })

    assert response.status_code == 400
    assert "term" in response.json()["detail"]


def test_student_sees_only_published_own_result(client, make_student, school_class, maths):
    user = User.objects.create_user(username="sade", password="pass12345", role=User.Role.STUDENT)
    student = make_student(user=user)
    result = services.submit_results(student, school_class, YEAR, "first", [marks(maths, 10, 10, 30)])
    client.force_login(user)
    url = reverse("academics:student_result", args=[student.pk])

    assert client.get(url, {"academic_year": YEAR, "term": "first"}).status_code == 404

    services.publish_result(result.pk)
    response = client.get(url, {"academic_year": YEAR, "term": "first"})

    assert response.status_code == 200
    assert response.json()["result"]["id"] == result.pk


def test_student_cannot_read_another_students_result(client, make_student, school_class, maths):
    user = User.objects.create_user(username="sade", password="pass12345", role=User.Role.STUDENT)
    make_student(user=user)
    other = make_student()
    result = services.submit_results(other, school_class, YEAR, "first", [marks(maths, 10, 10, 30)])
    services.publish_result(result.pk)
    client.force_login(user)

    response = client.get(
        reverse("academics:student_result", args=[other.pk]),
        {"academic_year": YEAR, "term": "first"},
    )

    assert response.status_code == 403


def test_parent_reads_ward_result(client, student, school_class, maths):
    parent = User.objects.create_user(username="parent", password="pass12345", role=User.Role.PARENT)
    student.guardians.add(parent)
    result = services.submit_results(student, school_class, YEAR, "first", [marks(maths, 10, 10, 30)])
    services.publish_result(result.pk)
    client.force_login(parent)

    response = client.get(
        reverse("academics:student_result", args=[student.pk]),
        {"academic_year": YEAR, "term": "first"},
    )

    assert response.status_code == 200


def test_officer_reads_drafts(officer_client, student, school_class, maths):
    services.submit_results(student, school_class, YEAR, "first", [marks(maths, 10, 10, 30)])

    response = officer_client.get(
        reverse("academics:student_result", args=[student.pk]),
        {"academic_year": YEAR, "term": "first"},
    )

    assert response.status_code == 200
    assert response.json()["result"]["published"] is False


def test_class_summary(officer_client, make_student, school_class, maths):
    services.submit_results(make_student(), school_class, YEAR, "first", [marks(maths, 20, 20, 50)])
    services.submit_results(make_student(), school_class, YEAR, "first", [marks(maths, 5, 5, 20)])

    response = officer_client.get(
        reverse("academics:class_summary", args=[school_class.pk]),
        {"academic_year": YEAR, "term": "first"},
    )

    summary = response.json()["summary"]
    assert summary["total_students"] == 2
    assert summary["pass_count"] == 1
    assert summary["pass_rate"] == 50


@pytest.mark.parametrize("bad_date", ["2025-02-30", "next monday", 5])
def test_submit_rejects_bad_next_term_date(officer_client, submission, bad_date):
    submission["next_term_begins"] = bad_date

    response = post_json(officer_client, reverse("academics:submit_results"), submission)

    assert response.status_code == 400
    assert not Result.objects.exists()


def test_submit_rejects_a_body_that_is_not_utf8(officer_client):
    response = officer_client.post(
        reverse("academics:submit_results"), data=b"\xff\xfe{", content_type="application/json"
    )

    assert response.status_code == 400


def test_submit_ranks_only_on_a_json_true(officer_client, submission):
    submission["rank"] = "false"
    response = post_json(officer_client, reverse("academics:submit_results"), submission)

    assert response.status_code == 400
    assert not Result.objects.exists()

    submission["rank"] = False
    response = post_json(officer_client, reverse("academics:submit_results"), submission)

    assert response.status_code == 200
    assert Result.objects.get().position is None

    submission["rank"] = True
    response = post_json(officer_client, reverse("academics:submit_results"), submission)

    assert response.json()["result"]["position"] == 1


def test_submit_rejects_boolean_ids(officer_client, submission):
    submission["class_id"] = True

    response = post_json(officer_client, reverse("academics:submit_results"), submission)

    assert response.status_code == 400
    assert "class_id" in response.json()["detail"]


def test_class_summary_of_an_empty_class(officer_client, school_class):
    response = officer_client.get(
        reverse("academics:class_summary", args=[school_class.pk]),
        {"academic_year": YEAR, "term": "first"},
    )

    assert response.status_code == 200
    assert response.json()["summary"]["total_students"] == 0


def test_result_list_filters(officer_client, make_student, school_class, other_class, maths):
    here = services.submit_results(make_student(), school_class, YEAR, "first", [marks(maths, 10, 10, 30)])
    services.submit_results(make_student(), other_class, YEAR, "first", [marks(maths, 10, 10, 30)])
    services.publish_result(here.pk)
    url = reverse("academics:result_list")

    assert officer_client.get(url).json()["count"] == 2
    response = officer_client.get(url, {"class_id": school_class.pk, "published": "true"})
    assert [r["id"] for r in response.json()["results"]] == [here.pk]
    assert officer_client.get(url, {"published": "false"}).json()["count"] == 1
    assert officer_client.get(url, {"published": "yes"}).status_code == 400
    assert officer_client.get(url, {"term": "summer"}).status_code == 400


def test_result_list_is_for_managers_only(client):
    user = User.objects.create_user(username="sade", password="pass12345", role=User.Role.STUDENT)
    client.force_login(user)

    assert client.get(reverse("academics:result_list")).status_code == 403


def test_student_results_across_terms(client, make_student, school_class, maths):
    user = User.objects.create_user(username="sade", password="pass12345", role=User.Role.STUDENT)
    student = make_student(user=user)
    first = services.submit_results(student, school_class, YEAR, "first", [marks(maths, 10, 10, 30)])
    services.submit_results(student, school_class, YEAR, "second", [marks(maths, 10, 10, 30)])
    services.publish_result(first.pk)
    client.force_login(user)

    response = client.get(reverse("academics:student_results", args=[student.pk]))

    assert response.status_code == 200
    assert [r["id"] for r in response.json()["results"]] == [first.pk]


def test_transcript_of_a_draft_is_withheld_from_the_student(client, make_student, school_class, maths):
    user = User.objects.create_user(username="sade", password="pass12345", role=User.Role.STUDENT)
    student = make_student(user=user)
    result = services.submit_results(student, school_class, YEAR, "first", [marks(maths, 18, 17, 50)])
    client.force_login(user)
    url = reverse("academics:result_transcript", args=[result.pk])

    response = client.get(url)
    assert response.status_code == 403
    assert response.json()["error"] == "Result not yet published"

    services.publish_result(result.pk)
    response = client.get(url)

    assert response.status_code == 200
    transcript = response.json()["transcript"]
    assert transcript["student"] == student.full_name
    assert transcript["subjects"][0]["grade"] == "A"


def test_transcript_of_another_student_is_denied(client, make_student, school_class, maths):
    user = User.objects.create_user(username="sade", password="pass12345", role=User.Role.STUDENT)
    make_student(user=user)
    result = services.submit_results(make_student(), school_class, YEAR, "first", [marks(maths, 10, 10, 30)])
    services.publish_result(result.pk)
    client.force_login(user)

    response = client.get(reverse("academics:result_transcript", args=[result.pk]))

    assert response.status_code == 403
    assert response.json()["error"] == "Access denied"


def test_officer_reads_draft_transcript(officer_client, student, school_class, maths, exam_officer):
    result = services.submit_results(
        student, school_class, YEAR, "first", [marks(maths, 10, 10, 30)], entered_by=exam_officer
    )

    response = officer_client.get(reverse("academics:result_transcript", args=[result.pk]))

    assert response.status_code == 200
    assert response.json()["transcript"]["published"] is False


def test_missing_transcript_is_404(officer_client):
    response = officer_client.get(reverse("academics:result_transcript", args=[4242]))

    assert response.status_code == 404
