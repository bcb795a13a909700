# Domain errors raised by the calendar engine and services


class CalendarError(Exception):
    """Base class for errors the API turns into a client response."""
    status_code = 400

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class ValidationError(CalendarError):
    """Malformed payload, e.g. an end that is not after the start."""
    status_code = 400


class NotFoundError(CalendarError):
    status_code = 404


class AccessDeniedError(CalendarError):
    status_code = 403


class TagResolutionError(CalendarError):
    """One or more tag ids do not exist for the acting user."""
    status_code = 400
