"""Fee portal payment confirmation service."""

__version__ = "1.0.0"
