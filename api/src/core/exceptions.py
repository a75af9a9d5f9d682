"""Domain error taxonomy shared by the progress and quiz services.

Every error carries a human readable ``message`` and a machine ``code``.
Routers translate codes into HTTP responses; services never recover locally.
"""


class EngineError(Exception):
    """Base error for progress and assessment operations."""

    def __init__(self, message: str, code: str = "engine_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class NotFoundError(EngineError):
    """Referenced entity does not exist."""

    def __init__(self, message: str = "Resource not found", code: str = "not_found"):
        super().__init__(message, code)


class ForbiddenError(EngineError):
    """Caller is not allowed to perform the operation."""

    def __init__(self, message: str = "Access denied", code: str = "forbidden"):
        super().__init__(message, code)


class BadRequestError(EngineError):
    """Operation is invalid for the current state."""

    def __init__(self, message: str = "Invalid request", code: str = "bad_request"):
        super().__init__(message, code)


class ConflictError(EngineError):
    """Concurrent write lost a uniqueness race; caller should retry."""

    def __init__(self, message: str = "Conflicting write", code: str = "conflict"):
        super().__init__(message, code)


class NotEnrolledError(ForbiddenError):
    """User holds no enrollment in the course."""

    def __init__(self, message: str = "Not enrolled in this course"):
        super().__init__(message, "not_enrolled")


class NotInstructorError(ForbiddenError):
    """Operation is restricted to the course instructor."""

    def __init__(self, message: str = "Only the course instructor can do this"):
        super().__init__(message, "not_instructor")


class CourseNotFoundError(NotFoundError):
    def __init__(self, message: str = "Course not found"):
        super().__init__(message, "course_not_found")


class CourseModuleNotFoundError(NotFoundError):
    def __init__(self, message: str = "Module not found"):
        super().__init__(message, "module_not_found")


class ResourceNotFoundError(NotFoundError):
    def __init__(self, message: str = "Resource not found"):
        super().__init__(message, "resource_not_found")
