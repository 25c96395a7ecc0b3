from django.apps import AppConfig


class InsuranceCoreConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "insurance_core"
    verbose_name = "Insurance Core"
