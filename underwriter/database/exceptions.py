class RepositoryError(Exception):
    """Base exception for persistent store errors."""


class JobNotFoundError(RepositoryError):
    """Raised when a job row cannot be found."""


class DuplicateArtifactError(RepositoryError):
    """Raised when a uniquely-indexed artifact already exists for the job."""
