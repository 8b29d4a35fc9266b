class QuizError(Exception):
    """Base error for quiz operations, carries the HTTP status to answer with."""
    status_code = 400

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self):
        return {"error": self.message}


class ValidationError(QuizError):
    status_code = 400


class ForbiddenError(QuizError):
    status_code = 403


class NotFoundError(QuizError):
    status_code = 404


class ConflictError(QuizError):
    status_code = 409
