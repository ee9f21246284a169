from .serialization import json_clone, to_json_safe

__all__ = ["json_clone", "to_json_safe"]
