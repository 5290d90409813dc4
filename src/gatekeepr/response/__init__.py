from .builder import AccessResponseBuilder
from .engine import ResponseEngine, generalize_value, mask_value, pseudonymize_value

__all__ = [
    "AccessResponseBuilder",
    "ResponseEngine",
    "generalize_value",
    "mask_value",
    "pseudonymize_value",
]
