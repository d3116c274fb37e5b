"""
Itinerary generation pipeline powered by Google Gemini.

This package turns a free-text trip request into a validated itinerary
through a fixed sequence of stages: authorization, environmental context,
activity retrieval and guaranteed-valid JSON composition.
"""

__version__ = "0.1.0"
