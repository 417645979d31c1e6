"""StudyForge: content ingestion and attributed study-material generation."""

__version__ = "0.1.0"
