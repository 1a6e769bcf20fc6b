from django.apps import AppConfig


class IntercompanyConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "intercompany"
    verbose_name = "Intercompany"
