from django.apps import AppConfig


class CustomGptsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "custom_gpts"
