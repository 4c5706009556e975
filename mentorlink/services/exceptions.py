class ServiceError(Exception):
    """Base class for service layer errors."""

    def __init__(self, message="An internal service error occurred.", status_code=500):
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class ConversationNotFoundError(ServiceError):
    def __init__(self, message="Conversation not found."):
        super().__init__(message, status_code=404)


class UserNotFoundError(ServiceError):
    def __init__(self, message="User not found."):
        super().__init__(message, status_code=404)


class RowNotFoundError(ServiceError):
    def __init__(self, message="Application row not found."):
        super().__init__(message, status_code=404)


class SuggestionNotFoundError(ServiceError):
    def __init__(self, message="Suggestion not found."):
        super().__init__(message, status_code=404)


class ReminderNotFoundError(ServiceError):
    def __init__(self, message="Reminder not found."):
        super().__init__(message, status_code=404)


class NotificationNotFoundError(ServiceError):
    def __init__(self, message="Notification not found."):
        super().__init__(message, status_code=404)


class NotAuthorizedError(ServiceError):
    def __init__(self, message="User not authorized for this action."):
        super().__init__(message, status_code=403)


class BusinessRuleError(ServiceError):
    """For violations of specific business rules."""

    def __init__(self, message="Action violates business rules."):
        super().__init__(message, status_code=400)


class BoardValidationError(BusinessRuleError):
    """A column schema or cell value failed validation; nothing was written."""

    def __init__(self, message="Invalid board data."):
        super().__init__(message)


class ConflictError(ServiceError):
    def __init__(self, message="Operation conflicts with existing state."):
        super().__init__(message, status_code=409)


class SuggestionAlreadyResolvedError(ConflictError):
    def __init__(self, message="Suggestion has already been resolved."):
        super().__init__(message)


class DatabaseError(ServiceError):
    """For general database errors during service operations."""

    def __init__(self, message="A database error occurred."):
        super().__init__(message, status_code=500)
