"""Terminal interface for reviewing, updating and installing the packages of a Python environment."""

__version__ = "0.1.0"