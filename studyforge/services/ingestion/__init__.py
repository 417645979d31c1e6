from studyforge.services.ingestion.service import IngestionService

__all__ = ["IngestionService"]
