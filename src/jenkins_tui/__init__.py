"""Terminal dashboard for Jenkins build history and console logs."""

__version__ = "0.1.0"
