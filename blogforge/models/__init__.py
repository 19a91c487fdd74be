"""Models layer - SQLAlchemy ORM models.

All models inherit from the Base class defined in core.database.
"""

from blogforge.core.database import Base
from blogforge.models.answer_coverage import AnswerCoverage, CoverageStrength
from blogforge.models.article import Article, ArticleStatus, ArticleType, PipelinePhase
from blogforge.models.brand import Brand
from blogforge.models.content_plan import AutomationStatus, CatchUpMode, ContentPlan

__all__ = [
    "AnswerCoverage",
    "Article",
    "ArticleStatus",
    "ArticleType",
    "AutomationStatus",
    "Base",
    "Brand",
    "CatchUpMode",
    "ContentPlan",
    "CoverageStrength",
    "PipelinePhase",
]
