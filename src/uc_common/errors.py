"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: User records
  9xxx: System / backends
"""


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        code: int,
        message: str,
        http_status: int = 500,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        self.operation: str | None = None
        self.user_id: int | None = None
        super().__init__(message)

    def with_context(self, operation: str, user_id: int | None = None) -> "AppError":
        """Attach the failing operation (and record id) without changing the message.

        The first context wins: an error re-raised through several layers keeps
        the innermost operation name.
        """
        if self.operation is None:
            self.operation = operation
            self.user_id = user_id
            if user_id is None:
                self.add_note(f"operation={operation}")
            else:
                self.add_note(f"operation={operation} user_id={user_id}")
        return self


# --- 1xxx: User records ---

class UserConflictError(AppError):
    """Uniqueness violation on username or email."""

    def __init__(
        self,
        field: str = "username or email",
        code: int = 1000,
    ) -> None:
        self.field = field
        super().__init__(code, f"User with this {field} already exists", 409)


class UsernameExistsError(UserConflictError):
    def __init__(self) -> None:
        super().__init__("username", 1001)


class EmailExistsError(UserConflictError):
    def __init__(self) -> None:
        super().__init__("email", 1002)


class UserNotFoundError(AppError):
    def __init__(self, user_id: int) -> None:
        super().__init__(1003, f"User not found: {user_id}", 404)


class InvalidUserInputError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(1004, f"Invalid user input: {detail}", 422)


# --- 9xxx: System ---

class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9002, detail, 500)


class StoreUnavailableError(AppError):
    def __init__(self, detail: str = "Record store unavailable") -> None:
        super().__init__(9003, detail, 503)


class StoreTimeoutError(StoreUnavailableError):
    def __init__(self, detail: str = "Record store request timed out") -> None:
        super().__init__(detail)
        self.code = 9004
        self.http_status = 504


class CacheUnavailableError(AppError):
    """Cache transport failure. Distinct from a miss, which is not an error."""

    def __init__(self, detail: str = "Cache unavailable") -> None:
        super().__init__(9005, detail, 503)
