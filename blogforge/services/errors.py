"""Service-level exceptions shared by the content engine."""


class ContentServiceError(Exception):
    """Base exception for content engine service errors."""


class LLMResponseError(ContentServiceError):
    """Raised when a model response is missing or does not match its schema."""

    def __init__(self, operation: str, message: str) -> None:
        super().__init__(f"{operation}: {message}")
        self.operation = operation


class BlogGenerationError(ContentServiceError):
    """Raised for pipeline failures that are not provider or parse errors."""

    def __init__(self, message: str, phase: str | None = None, article_id: str | None = None) -> None:
        super().__init__(message)
        self.phase = phase
        self.article_id = article_id


class ContentPlanError(ContentServiceError):
    """Raised when a content plan cannot be produced."""


class ContentPlanValidationError(ContentPlanError):
    """Raised when plan input fails validation."""

    def __init__(self, field_name: str, value: object, message: str) -> None:
        super().__init__(f"Validation error for {field_name}: {message}")
        self.field_name = field_name
        self.value = value


class ArticleNotFoundError(ContentServiceError):
    def __init__(self, article_id: str) -> None:
        super().__init__(f"Article {article_id} not found")
        self.article_id = article_id


class BrandNotFoundError(ContentServiceError):
    def __init__(self, brand_id: str) -> None:
        super().__init__(f"Brand {brand_id} not found")
        self.brand_id = brand_id


class ContentPlanNotFoundError(ContentServiceError):
    def __init__(self, plan_id: str) -> None:
        super().__init__(f"Content plan {plan_id} not found")
        self.plan_id = plan_id
