"""Question bank storage backends."""

from .repository import QuestionBankRepository, RepositorySyncError, RepositoryNotFoundError

__all__ = ["QuestionBankRepository", "RepositorySyncError", "RepositoryNotFoundError"]
