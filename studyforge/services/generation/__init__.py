"""Study-item generation from topic sources."""

from studyforge.services.generation.client import CompletionClient
from studyforge.services.generation.parser import parse_completion
from studyforge.services.generation.service import GenerationService

__all__ = ["CompletionClient", "GenerationService", "parse_completion"]
