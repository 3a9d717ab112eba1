from django.urls import path
from . import views

app_name = 'kds'

urlpatterns = [
    path('tickets/', views.ticket_list, name='ticket_list'),
    path('display/', views.kitchen_display, name='kitchen_display'),
    path('stats/', views.kitchen_stats, name='kitchen_stats'),
    path('tickets/<uuid:ticket_id>/', views.ticket_detail, name='ticket_detail'),

    # Cooking workflow
    path('tickets/<uuid:ticket_id>/start/', views.start_ticket, name='start_ticket'),
    path('tickets/<uuid:ticket_id>/items/start/', views.start_items, name='start_items'),
    path('tickets/<uuid:ticket_id>/items/ready/', views.ready_items, name='ready_items'),
    path('tickets/<uuid:ticket_id>/bump/', views.bump_ticket, name='bump_ticket'),
    path('tickets/<uuid:ticket_id>/items/recall/', views.recall_items, name='recall_items'),
    path('tickets/<uuid:ticket_id>/items/requeue/', views.requeue_items, name='requeue_items'),
    path('tickets/<uuid:ticket_id>/items/cancel/', views.cancel_items, name='cancel_items'),
    path('tickets/<uuid:ticket_id>/cancel/', views.cancel_ticket, name='cancel_ticket'),
    path('tickets/<uuid:ticket_id>/priority/', views.update_priority, name='update_priority'),

    # Timer
    path('tickets/<uuid:ticket_id>/timer/pause/', views.pause_timer, name='pause_timer'),
    path('tickets/<uuid:ticket_id>/timer/resume/', views.resume_timer, name='resume_timer'),
]
