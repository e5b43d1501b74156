from django.apps import AppConfig


class RealtimeConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "realtime"

    def ready(self):
        from .fanout import RealtimeFanout

        # One fanout (and connection registry) per process.
        self.fanout = RealtimeFanout()
