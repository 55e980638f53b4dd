from .ids import generate_id, generate_unique_id

__all__ = [
    "generate_id",
    "generate_unique_id",
]
