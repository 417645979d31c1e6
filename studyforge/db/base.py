# Import all models so that Base has them before running Alembic or create_all
from studyforge.db.base_class import Base  # noqa: F401

from studyforge.db.models.topic import Topic  # noqa: F401
from studyforge.db.models.document import Document  # noqa: F401
from studyforge.db.models.knowledge_base import KnowledgeBaseEntry  # noqa: F401
from studyforge.db.models.source import Source  # noqa: F401
from studyforge.db.models.generation import Generation, GenerationItem, GenerationItemSource  # noqa: F401
from studyforge.db.models.question import Question  # noqa: F401
