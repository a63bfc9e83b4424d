"""Global enums — must match DB CHECK constraints exactly."""

from enum import Enum


class GameStage(str, Enum):
    """Forward-only lifecycle of a game slot."""
    NOT_STARTED = "NOT_STARTED"
    INITIALIZED = "INITIALIZED"
    GUESS_SUBMITTED = "GUESS_SUBMITTED"
    SETTLED = "SETTLED"


class GuessDirection(str, Enum):
    HIGHER = "HIGHER"
    LOWER = "LOWER"


class UserRole(str, Enum):
    PLAYER = "PLAYER"
    SETTLER = "SETTLER"


class LedgerEntryType(str, Enum):
    # Faucet
    MINT = "MINT"
    # Plain transfer (user + counterparty paired)
    TRANSFER_OUT = "TRANSFER_OUT"
    TRANSFER_IN = "TRANSFER_IN"
    # Batch purchase (player + house paired)
    BATCH_DEBIT = "BATCH_DEBIT"
    BATCH_CREDIT = "BATCH_CREDIT"
    # Winning payout (house + player paired)
    PAYOUT_DEBIT = "PAYOUT_DEBIT"
    PAYOUT_CREDIT = "PAYOUT_CREDIT"


class GameEventName(str, Enum):
    BATCH_GAMES_CREATED = "BatchGamesCreated"
    GAME_INITIALIZED = "GameInitialized"
    GUESS_SUBMITTED = "GuessSubmitted"
    GAME_PLAYED = "GamePlayed"
