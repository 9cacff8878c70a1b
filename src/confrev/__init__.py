"""Conference paper submission and review platform."""

__version__ = "0.1.0"
