"""Settlement rule for a higher/lower guess.

A tie (actual == displayed) is a win whichever way the player guessed.
"""

from dataclasses import dataclass

PAYOUT_MULTIPLIER = 2


@dataclass(frozen=True)
class Outcome:
    won: bool
    payout: int


def player_wins(guess_higher: bool, displayed_price: int, actual_price: int) -> bool:
    if actual_price == displayed_price:
        return True
    if guess_higher:
        return actual_price > displayed_price
    return actual_price < displayed_price


def determine_outcome(
    guess_higher: bool, displayed_price: int, actual_price: int, cost: int
) -> Outcome:
    won = player_wins(guess_higher, displayed_price, actual_price)
    return Outcome(won=won, payout=cost * PAYOUT_MULTIPLIER if won else 0)
