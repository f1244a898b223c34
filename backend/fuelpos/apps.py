from django.apps import AppConfig


class FuelposConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "fuelpos"
    verbose_name = "Fuel station POS"

    def ready(self):
        # import signals so they register
        import fuelpos.signals  # noqa: F401
