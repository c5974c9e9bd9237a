"""Task suggestion gateway: utterance in, task identifier out."""

__version__ = "0.1.0"
