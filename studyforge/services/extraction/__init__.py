"""Format-dispatching extraction layer."""

from studyforge.services.extraction.coordinator import ExtractionCoordinator
from studyforge.services.extraction.engines import ExtractionSession
from studyforge.services.extraction.registry import Extractor, ExtractorRegistry, InputDescriptor

__all__ = ["ExtractionCoordinator", "ExtractionSession", "Extractor", "ExtractorRegistry", "InputDescriptor"]
