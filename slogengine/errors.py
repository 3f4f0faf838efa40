"""Domain errors raised by the storage and collection services."""


class SlogEngineError(Exception):
    """Base class for all SlogEngine errors."""


class PostNotFoundError(SlogEngineError, LookupError):
    """Raised when an operation needs an existing post file and there is none."""

    def __init__(self, username: str, post_id: str):
        super().__init__(f"Post {post_id} not found for {username}")
        self.username = username
        self.post_id = post_id


class PostValidationError(SlogEngineError, ValueError):
    """Raised before any write when a post is missing required fields."""


class InvalidNameError(PostValidationError):
    """Raised when a username or post id cannot be used as a path segment."""
