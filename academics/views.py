import json
from functools import wraps

from django.contrib.auth.decorators import login_required
from django.core.exceptions import ValidationError
from django.http import JsonResponse
from django.shortcuts import get_object_or_404
from django.utils.dateparse import parse_date
from django.views.decorators.http import require_GET, require_POST

from students.models import Student
from . import services
from .exceptions import InvalidStateError, NotFoundError, StorageError


def _result_payload(result, include_subjects=True):
    data = {
        "id": result.id,
        "student_id": result.student_id,
        "class_id": result.school_class_id,
        "academic_year": result.academic_year,
        "term": result.term,
        "total_score": result.total_score,
        "average_score": round(result.average_score, 2),
        "overall_grade": result.overall_grade,
        "position": result.position,
        "total_students": result.total_students,
        "remarks": result.remarks,
        "next_term_begins": result.next_term_begins.isoformat() if result.next_term_begins else None,
        "published": result.published,
        "published_at": result.published_at.isoformat() if result.published_at else None,
        "entered_at": result.entered_at.isoformat(),
    }
    if include_subjects:
        data["subjects"] = [{
            "subject_id": row.subject_id,
            "subject": row.subject.name,
            "code": row.subject.code,
            "ca1": row.ca1,
            "ca2": row.ca2,
            "exam": row.exam,
            "total": row.total,
            "grade": row.grade,
            "remark": row.remark,
            "position": row.subject_position,
            "highest": row.subject_highest,
        } for row in result.subject_results.select_related("subject")]
    return data


def engine_errors(view):
    """Translate engine errors into JSON error responses."""
    @wraps(view)
    def wrapper(request, *args, **kwargs):
        try:
            return view(request, *args, **kwargs)
        except ValidationError as e:
            detail = e.message_dict if hasattr(e, "error_dict") else {"__all__": e.messages}
            return JsonResponse({"error": "Invalid data", "detail": detail}, status=400)
        except NotFoundError as e:
            return JsonResponse({"error": str(e)}, status=404)
        except InvalidStateError as e:
            return JsonResponse({"error": str(e)}, status=409)
        except StorageError:
            return JsonResponse({"error": "Results are temporarily unavailable"}, status=503)
    return wrapper


def results_manager_required(view):
    @wraps(view)
    def wrapper(request, *args, **kwargs):
        if not request.user.can_manage_results:
            return JsonResponse({"error": "Permission denied"}, status=403)
        return view(request, *args, **kwargs)
    return wrapper


def _json_body(request):
    try:
        data = json.loads(request.body)
    except ValueError:
        # Malformed JSON or a body that is not UTF-8
        return None
    return data if isinstance(data, dict) else None


def _parse_date(value):
    if not isinstance(value, str):
        return None
    try:
        return parse_date(value)
    except ValueError:
        # Well formed but not a real date, e.g. 2025-02-30
        return None


def _scope(data):
    return data.get("class_id"), data.get("academic_year"), data.get("term")


@login_required
@require_POST
@results_manager_required
@engine_errors
def submit_results(request):
    """Create or replace a student's term result from posted marks"""
    data = _json_body(request)
    if data is None:
        return JsonResponse({"error": "Invalid JSON"}, status=400)

    next_term_begins = data.get("next_term_begins")
    if next_term_begins:
        next_term_begins = _parse_date(next_term_begins)
        if next_term_begins is None:
            return JsonResponse({"error": "next_term_begins must be a valid YYYY-MM-DD date"}, status=400)

    rank = data.get("rank", False)
    if not isinstance(rank, bool):
        return JsonResponse({"error": "rank must be true or false"}, status=400)

    result = services.submit_results(
        data.get("student_id"),
        data.get("class_id"),
        data.get("academic_year"),
        data.get("term"),
        data.get("subjects"),
        entered_by=request.user,
        remarks=data.get("remarks"),
        next_term_begins=next_term_begins,
        rank=rank,
    )
    return JsonResponse({"success": True, "result": _result_payload(result)})


@login_required
@require_POST
@results_manager_required
@engine_errors
def publish_result(request, result_id):
    result = services.publish_result(result_id)
    return JsonResponse({
        "success": True,
        "message": "Result published successfully",
        "result": _result_payload(result, include_subjects=False),
    })


@login_required
@require_POST
@results_manager_required
@engine_errors
def publish_class_results(request):
    """Rank (when needed) and publish every draft in a class scope"""
    data = _json_body(request)
    if data is None:
        return JsonResponse({"error": "Invalid JSON"}, status=400)

    published_count = services.publish_class_results(*_scope(data))
    return JsonResponse({
        "success": True,
        "published_count": published_count,
        "message": f"Published {published_count} results",
    })


@login_required
@require_POST
@results_manager_required
@engine_errors
def rank_class(request):
    data = _json_body(request)
    if data is None:
        return JsonResponse({"error": "Invalid JSON"}, status=400)

    ranked = services.rank_class(*_scope(data))
    results = services.list_results(*_scope(data))
    return JsonResponse({
        "success": True,
        "count": ranked,
        "results": [{
            "id": r.id,
            "student": r.student.full_name,
            "admission": r.student.admission_number,
            "total": r.total_score,
            "average": round(r.average_score, 2),
            "grade": r.overall_grade,
            "position": r.position,
        } for r in results],
    })


@login_required
@require_GET
@engine_errors
def student_result(request, student_id):
    """A student's result for ?academic_year=&term=, drafts only for managers"""
    student = get_object_or_404(Student, pk=student_id)
    if not request.user.can_view_student(student):
        return JsonResponse({"error": "Permission denied"}, status=403)

    result = services.get_student_result(
        student,
        request.GET.get("academic_year"),
        request.GET.get("term"),
        privileged=request.user.can_manage_results,
    )
    return JsonResponse({"success": True, "result": _result_payload(result)})


@login_required
@require_GET
@results_manager_required
@engine_errors
def class_summary(request, class_id):
    summary = services.class_summary(
        class_id,
        request.GET.get("academic_year"),
        request.GET.get("term"),
    )
    return JsonResponse({"success": True, "summary": summary})


@login_required
@require_GET
@results_manager_required
@engine_errors
def result_list(request):
    """Results filtered by ?academic_year=&term=&class_id=&published=true|false"""
    published = request.GET.get("published")
    if published not in (None, "true", "false"):
        return JsonResponse({"error": "published must be true or false"}, status=400)

    results = services.search_results(
        academic_year=request.GET.get("academic_year"),
        term=request.GET.get("term"),
        school_class=request.GET.get("class_id"),
        published=None if published is None else published == "true",
    )
    return JsonResponse({
        "success": True,
        "count": len(results),
        "results": [{
            **_result_payload(r, include_subjects=False),
            "student": r.student.full_name,
            "admission": r.student.admission_number,
            "class": r.school_class.name,
        } for r in results],
    })


@login_required
@require_GET
@engine_errors
def student_results(request, student_id):
    """Every result for a student, optionally narrowed by ?academic_year=&term="""
    student = get_object_or_404(Student, pk=student_id)
    if not request.user.can_view_student(student):
        return JsonResponse({"error": "Permission denied"}, status=403)

    results = services.student_results(
        student,
        academic_year=request.GET.get("academic_year"),
        term=request.GET.get("term"),
        privileged=request.user.can_manage_results,
    )
    return JsonResponse({
        "success": True,
        "student": student.full_name,
        "results": [_result_payload(r) for r in results],
    })


@login_required
@require_GET
@engine_errors
def result_transcript(request, result_id):
    result = services.get_result(result_id)
    if not request.user.can_view_student(result.student):
        return JsonResponse({"error": "Access denied"}, status=403)
    if not result.published and not request.user.can_manage_results:
        return JsonResponse({"error": "Result not yet published"}, status=403)

    data = _result_payload(result)
    data.update({
        "student": result.student.full_name,
        "admission": result.student.admission_number,
        "class": result.school_class.name,
        "entered_by": result.entered_by.get_full_name() if result.entered_by else None,
    })
    return JsonResponse({"success": True, "transcript": data})
