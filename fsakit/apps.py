from django.apps import AppConfig


class FsakitConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'fsakit'
    verbose_name = 'Finite automata toolkit'
