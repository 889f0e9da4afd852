"""mockdefense: retrieval-augmented mock thesis defense."""

__version__ = "0.1.0"
