from django.apps import AppConfig


class UserActivityConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "user_activity"
    verbose_name = "User activity"

    def ready(self):
        from . import conf
        from .receivers import connect_auth_receivers

        if conf.log_auth_events():
            connect_auth_receivers()
