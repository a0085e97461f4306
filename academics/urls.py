from django.urls import path
from . import views

app_name = "academics"

urlpatterns = [
    path('results/', views.submit_results, name='submit_results'),
    path('results/list/', views.result_list, name='result_list'),
    path('results/rank/', views.rank_class, name='rank_class'),
    path('results/publish/', views.publish_class_results, name='publish_class_results'),
    path('results/<int:result_id>/publish/', views.publish_result, name='publish_result'),
    path('results/<int:result_id>/transcript/', views.result_transcript, name='result_transcript'),
    path('results/student/<int:student_id>/', views.student_result, name='student_result'),
    path('results/student/<int:student_id>/all/', views.student_results, name='student_results'),
    path('results/summary/<int:class_id>/', views.class_summary, name='class_summary'),
]
