from django.contrib import admin, messages
from .models import SchoolClass, Subject, Result, SubjectResult, ClassTermInfo
from .exceptions import InvalidStateError
from .services import delete_result, publish_result, rank_class


@admin.register(SchoolClass)
class SchoolClassAdmin(admin.ModelAdmin):
    list_display = ("name", "is_active")
    list_filter = ("is_active",)
    search_fields = ("name",)


@admin.register(Subject)
class SubjectAdmin(admin.ModelAdmin):
    list_display = ("name", "code")
    search_fields = ("name", "code")


class SubjectResultInline(admin.TabularInline):
    model = SubjectResult
    extra = 0
    fields = ("subject", "ca1", "ca2", "exam", "total", "grade", "remark", "subject_position")
    readonly_fields = fields
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Result)
class ResultAdmin(admin.ModelAdmin):
    list_display = (
        "student",
        "school_class",
        "academic_year",
        "term",
        "total_score",
        "average_score",
        "overall_grade",
        "position",
        "total_students",
        "published",
    )
    list_filter = ("school_class", "academic_year", "term", "published")
    search_fields = ("student__first_name", "student__last_name", "student__admission_number")
    # The natural key is fixed; a result changes scope only through a new submission
    readonly_fields = (
        "student",
        "school_class",
        "academic_year",
        "term",
        "total_score",
        "average_score",
        "overall_grade",
        "position",
        "total_students",
        "entered_by",
        "entered_at",
        "published",
        "published_at",
    )
    inlines = [SubjectResultInline]
    actions = ["rank_scopes", "publish_results"]

    # Marks only change through submit_results
    def has_add_permission(self, request):
        return False

    def delete_model(self, request, obj):
        delete_result(obj.pk)

    def delete_queryset(self, request, queryset):
        for pk in list(queryset.values_list("pk", flat=True)):
            delete_result(pk)

    def rank_scopes(self, request, queryset):
        if not queryset.exists():
            self.message_user(request, "No results selected.", messages.WARNING)
            return

        scopes = set(queryset.values_list("school_class", "academic_year", "term"))
        for school_class, academic_year, term in scopes:
            rank_class(school_class, academic_year, term)

        self.message_user(
            request,
            f"Ranked {len(scopes)} class term(s).",
            messages.SUCCESS,
        )

    rank_scopes.short_description = "Compute class positions"

    def publish_results(self, request, queryset):
        published = 0
        for result in queryset.filter(published=False):
            try:
                publish_result(result.pk)
            except InvalidStateError:
                # Published by someone else since the page loaded
                continue
            published += 1

        self.message_user(request, f"Published {published} result(s).", messages.SUCCESS)

    publish_results.short_description = "Publish selected results"


@admin.register(ClassTermInfo)
class ClassTermInfoAdmin(admin.ModelAdmin):
    list_display = ("school_class", "academic_year", "term", "class_population", "ranked_at")
    list_filter = ("school_class", "academic_year", "term")
    readonly_fields = ("class_population", "ranked_at")
