"""
Domain exceptions raised by the quiz services

Each exception carries a user-facing message and the HTTP status the API
layer renders it with. The messages distinguish three remedies for the
caller: try a different topic, try again later, or generate a new quiz.
"""

TRY_DIFFERENT_TOPIC = "Failed to generate quiz. Please try again with a different topic."
TRY_AGAIN_LATER = "Failed to generate quiz. The AI service is unavailable, please try again later."
QUIZ_NO_LONGER_VALID = "This quiz is no longer valid. Please generate a new quiz."


class QuizError(Exception):
    """Base class for all quiz service errors"""

    status_code = 500
    error_code = "quiz_error"
    default_message = "An unexpected error occurred. Please try again later."

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class QuizValidationError(QuizError):
    """Bad topic, model or answers, rejected before any I/O"""

    status_code = 400
    error_code = "validation_error"
    default_message = "Invalid request."


class QuizGenerationError(QuizError):
    """The quiz could not be generated"""

    status_code = 502
    error_code = "generation_failed"
    default_message = TRY_AGAIN_LATER


class ProviderConfigurationError(QuizGenerationError):
    """Credentials for the resolved provider are missing"""

    status_code = 503
    error_code = "provider_not_configured"


class ProviderRequestError(QuizGenerationError):
    """Transport or API error from the provider"""


class EmptyProviderResponseError(QuizGenerationError):
    """Provider answered with no text"""


class QuizParseError(QuizGenerationError):
    """Provider text did not yield enough valid questions"""

    default_message = TRY_DIFFERENT_TOPIC


class QuizNotFoundError(QuizError):
    status_code = 404
    error_code = "not_found"
    default_message = "Quiz not found."


class QuizExpiredError(QuizError):
    status_code = 410
    error_code = "quiz_expired"
    default_message = QUIZ_NO_LONGER_VALID


class QuizAccessDeniedError(QuizError):
    status_code = 403
    error_code = "access_denied"
    default_message = "Access denied. You can only access your own quizzes."


class QuizPersistenceError(QuizError):
    """Database write failed; partial writes have been cleaned up"""

    status_code = 500
    error_code = "persistence_error"
    default_message = "Failed to save data. Please try again later."
