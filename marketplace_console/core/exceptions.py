class ConsoleException(Exception):
    """Base exception for the marketplace console"""

    pass


class UnauthorizedException(ConsoleException):
    """Raised when JWT validation fails or no session is open"""

    pass


class ForbiddenException(ConsoleException):
    """Raised when a principal is not allowed to use a console surface"""

    pass


class PermissionFetchError(ConsoleException):
    """Raised by a permission source when grants cannot be loaded"""

    pass


class AuthorizationContextError(ConsoleException):
    """Raised when the authorization engine is used outside an open session context"""

    pass
