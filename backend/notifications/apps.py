from django.apps import AppConfig


class NotificationsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "notifications"
    verbose_name = "Waiter Notifications"

    def ready(self):
        # Register the waiter's order event handlers
        import notifications.events.handlers  # noqa
