"""tourwatch -- booking calendar availability monitor for tour operators."""

__version__ = "0.3.0"
