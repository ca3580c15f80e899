class RepositoryError(Exception):
    """Storage failure the caller cannot recover from within the request."""


class DuplicateKeyError(RepositoryError):
    def __init__(self, fields=(), message="duplicate key"):
        super().__init__(message)
        self.fields = tuple(fields)
