# campusvote/errors.py

# Failure taxonomy shared by every service. Routes never build error
# responses by hand: the handler in campusvote/__init__.py renders
# {"message": ...} with the status code carried by the exception.


class VotingError(Exception):
    status_code = 500

    def __init__(self, message):
        super().__init__(message)
        self.message = message


class ValidationError(VotingError):
    """Missing or malformed input, or a voting-window violation."""
    status_code = 400


class ConflictError(VotingError):
    """Duplicate vote, or edit/delete blocked by existing votes."""
    # The web client expects 400 for "already voted".
    status_code = 400


class NotFoundError(VotingError):
    status_code = 404


class AuthenticationError(VotingError):
    status_code = 401


class UpstreamError(VotingError):
    """Email delivery or storage failure."""
    status_code = 500
