"""Face correlation for missing/found-person reports."""

__version__ = "0.1.0"
