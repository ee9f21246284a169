from .smart_cache import SmartCache, make_template_key, normalize_template_name

__all__ = [
    "SmartCache",
    "make_template_key",
    "normalize_template_name",
]
