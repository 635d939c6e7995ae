"""Carousel Studio: AI carousel generation and resilient web image acquisition."""

__version__ = "0.1.0"
