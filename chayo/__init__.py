"""Chayo onboarding and business chat engine."""

__version__ = "0.1.0"
