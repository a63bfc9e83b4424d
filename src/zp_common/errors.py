"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: Auth/User
  2xxx: Token custody
  3xxx: Game ledger
  4xxx: Listing source
  9xxx: System

Every concrete error also belongs to one category base (validation,
authorization, state conflict, funds, upstream) so callers can catch by kind.
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
        super().__init__(message)


# --- Categories ---

class ValidationError(AppError):
    """Bad input, rejected before any state change."""


class AuthorizationError(AppError):
    """Wrong caller for the attempted action, rejected before any state change."""


class NotFoundError(AppError):
    pass


class StateConflictError(AppError):
    """Record is not in the expected pre-state (includes lost races)."""


class FundsError(AppError):
    """Balance or transfer failure — the enclosing operation is rolled back."""


class UpstreamUnavailableError(AppError):
    """External dependency unreachable or returned nothing usable."""


# --- 1xxx: Auth/User ---

class UsernameExistsError(ValidationError):
    def __init__(self) -> None:
        super().__init__(1001, "Username already exists", 409)


class EmailExistsError(ValidationError):
    def __init__(self) -> None:
        super().__init__(1002, "Email already exists", 409)


class InvalidCredentialsError(AuthorizationError):
    def __init__(self) -> None:
        super().__init__(1003, "Invalid username or password", 401)


class AccountDisabledError(AuthorizationError):
    def __init__(self) -> None:
        super().__init__(1004, "Account is disabled", 403)


class InvalidRefreshTokenError(AuthorizationError):
    def __init__(self) -> None:
        super().__init__(1005, "Refresh token is invalid or expired", 401)


class UnauthorizedError(AuthorizationError):
    def __init__(self, detail: str) -> None:
        super().__init__(1006, f"Unauthorized: {detail}", 403)


# --- 2xxx: Token custody ---

class InsufficientFundsError(FundsError):
    def __init__(self, required: int, available: int) -> None:
        super().__init__(
            2001,
            f"Insufficient funds: required {required}, available {available}",
            422,
        )


class InsufficientAllowanceError(FundsError):
    def __init__(self, required: int, allowed: int) -> None:
        super().__init__(
            2002,
            f"Insufficient allowance: required {required}, allowed {allowed}",
            422,
        )


class AccountNotFoundError(NotFoundError):
    def __init__(self, user_id: str) -> None:
        super().__init__(2003, f"Account not found for user {user_id}", 404)


class PayoutTransferFailedError(FundsError):
    def __init__(self, game_id: int, payout: int) -> None:
        super().__init__(
            2004,
            f"Payout transfer of {payout} failed for game {game_id}; settlement rolled back",
            422,
        )


class InvalidAmountError(ValidationError):
    def __init__(self, amount: int) -> None:
        super().__init__(2005, f"Amount must be positive, got {amount}", 422)


# --- 3xxx: Game ledger ---

class GameNotFoundError(NotFoundError):
    def __init__(self, game_id: int) -> None:
        super().__init__(3001, f"Game not found: {game_id}", 404)


class WrongStageError(StateConflictError):
    def __init__(self, game_id: int, expected: str, actual: str) -> None:
        super().__init__(
            3002,
            f"Game {game_id} is in stage {actual}, expected {expected}",
            409,
        )


class AlreadyInitializedError(StateConflictError):
    def __init__(self, game_id: int, stage: str) -> None:
        super().__init__(3003, f"Game {game_id} already initialized (stage={stage})", 409)


class InvalidListingError(ValidationError):
    def __init__(self, listing_ref: str | None) -> None:
        super().__init__(3004, f"Invalid listing reference: {listing_ref!r}", 422)


class InvalidPriceError(ValidationError):
    def __init__(self, price: int) -> None:
        super().__init__(3005, f"Price must be greater than 0, got {price}", 422)


class InvalidBatchSizeError(ValidationError):
    def __init__(self, batch_size: int, max_size: int) -> None:
        super().__init__(
            3006, f"Batch size must be between 1 and {max_size}, got {batch_size}", 422
        )


# --- 4xxx: Listing source ---

class ListingSourceUnavailableError(UpstreamUnavailableError):
    def __init__(self, detail: str) -> None:
        super().__init__(4001, f"Listing source unavailable: {detail}", 502)


class NoListingsFoundError(UpstreamUnavailableError):
    def __init__(self, city: str) -> None:
        super().__init__(4002, f"No listings found for {city}", 502)


class ListingNotFoundError(NotFoundError):
    def __init__(self, listing_ref: str) -> None:
        super().__init__(4003, f"Listing not recorded: {listing_ref}", 404)


# --- 9xxx: System ---

class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9002, detail, 500)
