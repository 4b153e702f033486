"""
Classified failures.

Every business-rule violation or absence detected by a service is raised as
a ``ClientError`` subclass.  The status code is implied by the class, so the
response normalizer never has to inspect message text.  Anything that is not
a ``ClientError`` is an internal fault and is rendered as a generic 500.
"""


class ClientError(Exception):
    """Base class for failures caused by the caller."""

    status_code: int = 400

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class InvariantError(ClientError):
    """Malformed payload or a violated business rule."""

    status_code = 400


class AuthenticationError(ClientError):
    status_code = 401


class AuthorizationError(ClientError):
    status_code = 403


class NotFoundError(ClientError):
    status_code = 404


class ConflictError(ClientError):
    """The mutation collides with existing state (e.g. a duplicate like)."""

    status_code = 409


class PayloadTooLargeError(ClientError):
    status_code = 413


class CacheUnavailableError(Exception):
    """
    The cache store could not be reached or did not answer in time.

    Raised by ``CacheClient`` and recovered by its callers; it never reaches
    the response normalizer.
    """
