from django.urls import path
from . import views

app_name = 'notifications'

urlpatterns = [
    path('notifications/', views.pending_notifications, name='pending_notifications'),
    path('notifications/unread-count/', views.unread_count, name='unread_count'),
    path('notifications/<uuid:notification_id>/', views.notification_detail, name='notification_detail'),
    path('notifications/<uuid:notification_id>/read/', views.mark_read, name='mark_read'),
    path('notifications/<uuid:notification_id>/archive/', views.archive, name='archive'),
]
