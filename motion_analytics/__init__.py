"""Motion analytics kernel for pose-based athletic performance metrics."""

__version__ = "0.1.0"
