"""Repositories layer - Data access and persistence.

Repositories handle all database operations using SQLAlchemy.
They abstract the database implementation from the service layer.
"""

from blogforge.repositories.article import ArticleRepository
from blogforge.repositories.brand import BrandRepository
from blogforge.repositories.content_plan import ContentPlanRepository
from blogforge.repositories.coverage import CoverageRepository

__all__ = [
    "ArticleRepository",
    "BrandRepository",
    "ContentPlanRepository",
    "CoverageRepository",
]
