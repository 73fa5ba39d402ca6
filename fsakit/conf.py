from django.conf import settings

DEFAULTS = {
    # Words returned by enumeration when the request gives no amount
    'FSAKIT_DEFAULT_WORD_COUNT': 10,
    'FSAKIT_MAX_WORD_COUNT': 1000,
    # Render tables with -> and eps instead of → and ε
    'FSAKIT_ASCII_TABLES': False,
    'FSAKIT_MAX_INPUT_LENGTH': 200000,
}


def get_setting(name: str):
    """Read an fsakit setting from the Django settings, falling back to its default."""
    return getattr(settings, name, DEFAULTS[name])
