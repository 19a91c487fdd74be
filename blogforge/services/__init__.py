"""Services layer - Business logic and orchestration.

Services coordinate between repositories, integrations, and other services
to implement business use cases. They contain no direct database or
external API access - that's delegated to repositories and integrations.
"""

from blogforge.services.blog_generation import (
    AssetOutcome,
    BlogGenerationPipeline,
    GenerationPayload,
    dispatch_generation,
)
from blogforge.services.content_plan_generator import (
    ContentPlanGenerator,
    ContentPlanResult,
)
from blogforge.services.errors import (
    ArticleNotFoundError,
    BlogGenerationError,
    BrandNotFoundError,
    ContentPlanError,
    ContentPlanNotFoundError,
    ContentPlanValidationError,
    ContentServiceError,
    LLMResponseError,
)
from blogforge.services.gsc_plan import GSCPlanResult, GSCPlanService
from blogforge.services.query_clustering import KeywordCluster, cluster_queries
from blogforge.services.query_scoring import ScoredQuery, score_queries
from blogforge.services.title_suggestions import TitleSuggestionService
from blogforge.services.watchman import Watchman, WatchmanResult, plan_dispatches

__all__ = [
    # Blog generation
    "AssetOutcome",
    "BlogGenerationPipeline",
    "GenerationPayload",
    "dispatch_generation",
    # Content plans
    "ContentPlanGenerator",
    "ContentPlanResult",
    "GSCPlanResult",
    "GSCPlanService",
    "KeywordCluster",
    "cluster_queries",
    "ScoredQuery",
    "score_queries",
    # Titles
    "TitleSuggestionService",
    # Watchman
    "Watchman",
    "WatchmanResult",
    "plan_dispatches",
    # Errors
    "ArticleNotFoundError",
    "BlogGenerationError",
    "BrandNotFoundError",
    "ContentPlanError",
    "ContentPlanNotFoundError",
    "ContentPlanValidationError",
    "ContentServiceError",
    "LLMResponseError",
]
