from django.apps import AppConfig


class ChainStubConfig(AppConfig):
	default_auto_field = "django.db.models.BigAutoField"
	name = "chain_stub"
	verbose_name = "Local token chain simulation"
