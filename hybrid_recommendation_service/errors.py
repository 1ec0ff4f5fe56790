"""Errors raised by the recommendation engine."""


class RecommendationError(Exception):
    """Base class for engine errors."""
    code: str = "recommendation_error"
    status: int = 500

    def __init__(self, message: str = ""):
        super().__init__(message or self.__class__.__name__)


class NotFound(RecommendationError):
    """A query referenced an id that is not in the loaded catalogs."""
    code = "not_found"
    status = 404


class ProfileNotFound(NotFound):
    code = "profile_not_found"

    def __init__(self, profile_id: str):
        self.profile_id = profile_id
        super().__init__(f"Profile with ID {profile_id} not found")


class ContentNotFound(NotFound):
    code = "content_not_found"

    def __init__(self, content_id: str):
        self.content_id = content_id
        super().__init__(f"Content with ID {content_id} not found")


class ConfigurationFailure(RecommendationError):
    """The catalog store could not supply a complete snapshot."""
    code = "configuration_failure"
    status = 503
