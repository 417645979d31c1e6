from studyforge.db.models.topic import Topic
from studyforge.db.models.document import Document
from studyforge.db.models.knowledge_base import KnowledgeBaseEntry
from studyforge.db.models.source import Source
from studyforge.db.models.generation import Generation, GenerationItem, GenerationItemSource
from studyforge.db.models.question import Question

# These imports are required to ensure all models are discovered by SQLAlchemy
__all__ = [
    "Topic",
    "Document",
    "KnowledgeBaseEntry",
    "Source",
    "Generation",
    "GenerationItem",
    "GenerationItemSource",
    "Question",
]
