"""
Custom DRF Router to avoid converter registration conflict.

DRF's DefaultRouter uses format_suffix_patterns which registers a custom
converter 'drf_format_suffix'. When several routers are mounted, this
raises ValueError: "Converter 'drf_format_suffix' is already registered."
"""

from rest_framework.routers import DefaultRouter


class SafeDefaultRouter(DefaultRouter):
    """DefaultRouter without format suffix patterns."""
    include_format_suffixes = False
