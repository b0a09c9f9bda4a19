"""
Therapy Queue URLs
Queue registration, patient enrollment, entry lifecycle and statistics
"""
from django.urls import path
from queue_management import views

app_name = 'queue_management'

urlpatterns = [
    # Queues
    path('', views.TherapyQueueCreateView.as_view(), name='create_queue'),
    path('clinic/<str:clinic_id>/', views.get_clinic_queues, name='clinic_queues'),
    path('clinic/<str:clinic_id>/type/<str:therapy_type>/', views.get_queue_by_type, name='queue_by_type'),
    path('<uuid:queue_id>/deactivate/', views.deactivate_queue, name='deactivate_queue'),
    path('<uuid:queue_id>/stats/', views.get_queue_stats, name='queue_stats'),
    path('<uuid:queue_id>/reorder/', views.reorder_queue, name='reorder_queue'),

    # Entries
    path('<uuid:queue_id>/entries/', views.add_to_queue, name='add_to_queue'),
    path('entries/<uuid:entry_id>/', views.QueueEntryDetailView.as_view(), name='entry_detail'),
    path('entries/<uuid:entry_id>/start/', views.start_entry, name='start_entry'),
    path('entries/<uuid:entry_id>/check-in/', views.check_in_entry, name='check_in_entry'),
    path('entries/<uuid:entry_id>/complete/', views.complete_entry, name='complete_entry'),

    # Patient position
    path('position/<str:appointment_id>/', views.get_patient_position, name='patient_position'),
]
