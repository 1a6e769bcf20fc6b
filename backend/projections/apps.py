from django.apps import AppConfig


class ProjectionsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "projections"

    def ready(self):
        # Registration order is processing order.
        from projections import accounts  # noqa: F401
        from projections import periods  # noqa: F401
        from projections import accounting  # noqa: F401
        from projections import account_balance  # noqa: F401
        from projections import sales  # noqa: F401
        from projections import purchases  # noqa: F401
        from projections import intercompany  # noqa: F401
