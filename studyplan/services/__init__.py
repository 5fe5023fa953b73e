"""Planning services and external integrations."""

from studyplan.services.text_generation import text_generator

__all__ = ["text_generator"]
