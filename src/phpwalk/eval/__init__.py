"""Evaluator helper modules for the phpwalk runtime."""

__all__ = [
    "literals",
    "coerce",
    "variable",
    "assign",
    "array",
    "global_decl",
    "offset",
    "binary",
    "statements",
]
