"""GameLedgerService over in-memory repositories.

FakeSession restores the last committed state on rollback, so a failed call
that leaves the store untouched really did roll back as a whole.
"""

import asyncio
from datetime import UTC, datetime

import pytest

from config.settings import settings
from src.zp_common.caller import Caller
from src.zp_common.enums import GameEventName, GameStage, UserRole
from src.zp_common.errors import (
    AlreadyInitializedError,
    GameNotFoundError,
    InsufficientAllowanceError,
    InsufficientFundsError,
    InvalidBatchSizeError,
    InvalidListingError,
    InvalidPriceError,
    PayoutTransferFailedError,
    StateConflictError,
    UnauthorizedError,
    WrongStageError,
)
from src.zp_common.units import tokens_to_wei
from src.zp_game.application.service import GameLedgerService
from src.zp_game.domain.models import ZERO_LISTING_REF
from src.zp_token.application.custody import TokenCustody
from src.zp_token.domain.constants import HOUSE_ACCOUNT_ID
from tests.unit.fakes import (
    FakeEventWriter,
    FakeGameRepository,
    FakeSession,
    FakeTokenRepository,
    seed_account,
    seed_allowance,
)

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)
COST = tokens_to_wei(1000)
PLAYER = Caller("player-1")
OTHER = Caller("player-2")
SETTLER = Caller("settler-1", UserRole.SETTLER)


def ref(n: int) -> str:
    return "0x" + str(n).zfill(64)


@pytest.fixture
def db() -> FakeSession:
    return FakeSession()


@pytest.fixture
def ledger() -> GameLedgerService:
    return GameLedgerService(
        repo=FakeGameRepository(),
        custody=TokenCustody(FakeTokenRepository()),
        events=FakeEventWriter(),
        clock=lambda: NOW,
    )


async def fund(db: FakeSession, caller: Caller, games: int) -> None:
    await seed_account(db, caller.user_id, games * COST)
    await seed_allowance(db, caller.user_id, HOUSE_ACCOUNT_ID, games * COST)


async def guessed_game(
    ledger: GameLedgerService, db: FakeSession, guess_higher: bool, displayed: int = 500_000
) -> int:
    await fund(db, PLAYER, 10)
    batch = await ledger.create_batch(db, PLAYER)
    game_id = batch.first_game_id
    await ledger.initialize(db, SETTLER, game_id, ref(game_id), displayed)
    await ledger.submit_guess(db, PLAYER, game_id, guess_higher)
    return game_id


def event_names(db: FakeSession) -> list[str]:
    return [e.event_name for e in db.store.events]


# ---------------------------------------------------------------------------
# create_batch
# ---------------------------------------------------------------------------


class TestCreateBatch:
    async def test_default_batch(self, ledger: GameLedgerService, db: FakeSession) -> None:
        await fund(db, PLAYER, 10)

        result = await ledger.create_batch(db, PLAYER)

        assert (result.first_game_id, result.last_game_id) == (1, 10)
        assert result.total_cost == 10 * COST
        games = [db.store.games[i] for i in range(1, 11)]
        assert all(g.stage == GameStage.NOT_STARTED for g in games)
        assert all(g.owner_id == PLAYER.user_id and g.cost == COST for g in games)
        assert db.store.accounts[PLAYER.user_id] == 0
        assert db.store.accounts[HOUSE_ACCOUNT_ID] == 10 * COST
        assert db.store.allowances[(PLAYER.user_id, HOUSE_ACCOUNT_ID)] == 0

    async def test_emits_batch_event_with_range(
        self, ledger: GameLedgerService, db: FakeSession
    ) -> None:
        await fund(db, PLAYER, 10)
        result = await ledger.create_batch(db, PLAYER)

        (event,) = db.store.events
        assert event.event_name == GameEventName.BATCH_GAMES_CREATED.value
        assert event.payload["startGameId"] == 1
        assert event.payload["endGameId"] == 10
        assert event.payload["timestamp"] == int(NOW.timestamp())
        assert event.tx_hash == result.tx_hash

    @pytest.mark.parametrize("size", [1, 7, 50])
    async def test_ids_contiguous_and_ascending(
        self, ledger: GameLedgerService, db: FakeSession, size: int
    ) -> None:
        await fund(db, PLAYER, 2 * size)

        first = await ledger.create_batch(db, PLAYER, batch_size=size)
        second = await ledger.create_batch(db, PLAYER, batch_size=size)

        assert first.game_count == second.game_count == size
        assert second.first_game_id == first.last_game_id + 1
        assert sorted(db.store.games) == list(range(1, 2 * size + 1))

    async def test_concurrent_batches_do_not_overlap(
        self, ledger: GameLedgerService, db: FakeSession
    ) -> None:
        await fund(db, PLAYER, 10)
        await fund(db, OTHER, 10)

        a, b = await asyncio.gather(
            ledger.create_batch(db, PLAYER), ledger.create_batch(db, OTHER)
        )

        ids_a = set(range(a.first_game_id, a.last_game_id + 1))
        ids_b = set(range(b.first_game_id, b.last_game_id + 1))
        assert not ids_a & ids_b
        assert ids_a | ids_b == set(range(1, 21))

    async def test_insufficient_funds_creates_nothing(
        self, ledger: GameLedgerService, db: FakeSession
    ) -> None:
        await seed_account(db, PLAYER.user_id, 9 * COST)
        await seed_allowance(db, PLAYER.user_id, HOUSE_ACCOUNT_ID, 10 * COST)

        with pytest.raises(InsufficientFundsError):
            await ledger.create_batch(db, PLAYER)

        assert db.store.games == {}
        assert db.store.events == []
        assert db.store.next_game_id == 1
        assert db.store.accounts[PLAYER.user_id] == 9 * COST
        assert db.rollbacks == 1

    async def test_insufficient_allowance_creates_nothing(
        self, ledger: GameLedgerService, db: FakeSession
    ) -> None:
        await seed_account(db, PLAYER.user_id, 10 * COST)
        await seed_allowance(db, PLAYER.user_id, HOUSE_ACCOUNT_ID, COST)

        with pytest.raises(InsufficientAllowanceError):
            await ledger.create_batch(db, PLAYER)

        assert db.store.games == {}
        assert db.store.accounts[PLAYER.user_id] == 10 * COST
        assert db.store.accounts[HOUSE_ACCOUNT_ID] == 0
        assert db.store.ledger == []

    @pytest.mark.parametrize("size", [0, -1, 51])
    async def test_invalid_batch_size(
        self, ledger: GameLedgerService, db: FakeSession, size: int
    ) -> None:
        with pytest.raises(InvalidBatchSizeError):
            await ledger.create_batch(db, PLAYER, batch_size=size)

    async def test_non_positive_cost(self, ledger: GameLedgerService, db: FakeSession) -> None:
        with pytest.raises(InvalidPriceError):
            await ledger.create_batch(db, PLAYER, batch_size=1, cost_per_game=0)


# ---------------------------------------------------------------------------
# initialize
# ---------------------------------------------------------------------------


class TestInitialize:
    async def test_settler_initializes(self, ledger: GameLedgerService, db: FakeSession) -> None:
        await fund(db, PLAYER, 10)
        await ledger.create_batch(db, PLAYER)

        game = await ledger.initialize(db, SETTLER, 3, ref(3), 500_000)

        assert game.stage == GameStage.INITIALIZED
        stored = db.store.games[3]
        assert (stored.stage, stored.displayed_price, stored.listing_ref) == (
            GameStage.INITIALIZED, 500_000, ref(3),
        )
        assert event_names(db)[-1] == GameEventName.GAME_INITIALIZED.value

    async def test_player_cannot_initialize(
        self, ledger: GameLedgerService, db: FakeSession
    ) -> None:
        await fund(db, PLAYER, 10)
        await ledger.create_batch(db, PLAYER)

        with pytest.raises(UnauthorizedError):
            await ledger.initialize(db, PLAYER, 1, ref(1), 500_000)
        assert db.store.games[1].stage == GameStage.NOT_STARTED

    async def test_unknown_game(self, ledger: GameLedgerService, db: FakeSession) -> None:
        with pytest.raises(GameNotFoundError):
            await ledger.initialize(db, SETTLER, 99, ref(99), 500_000)

    async def test_second_initialize_conflicts(
        self, ledger: GameLedgerService, db: FakeSession
    ) -> None:
        await fund(db, PLAYER, 10)
        await ledger.create_batch(db, PLAYER)
        await ledger.initialize(db, SETTLER, 1, ref(1), 500_000)

        with pytest.raises(AlreadyInitializedError) as exc_info:
            await ledger.initialize(db, SETTLER, 1, ref(2), 700_000)

        assert isinstance(exc_info.value, StateConflictError)
        assert db.store.games[1].displayed_price == 500_000
        assert db.store.games[1].listing_ref == ref(1)

    @pytest.mark.parametrize("bad_ref", ["", ZERO_LISTING_REF])
    async def test_bad_listing_ref(
        self, ledger: GameLedgerService, db: FakeSession, bad_ref: str
    ) -> None:
        await fund(db, PLAYER, 10)
        await ledger.create_batch(db, PLAYER)
        with pytest.raises(InvalidListingError):
            await ledger.initialize(db, SETTLER, 1, bad_ref, 500_000)

    async def test_zero_price(self, ledger: GameLedgerService, db: FakeSession) -> None:
        await fund(db, PLAYER, 10)
        await ledger.create_batch(db, PLAYER)
        with pytest.raises(InvalidPriceError):
            await ledger.initialize(db, SETTLER, 1, ref(1), 0)


# ---------------------------------------------------------------------------
# submit_guess
# ---------------------------------------------------------------------------


class TestSubmitGuess:
    async def test_owner_guesses(self, ledger: GameLedgerService, db: FakeSession) -> None:
        await fund(db, PLAYER, 10)
        await ledger.create_batch(db, PLAYER)
        await ledger.initialize(db, SETTLER, 1, ref(1), 500_000)

        await ledger.submit_guess(db, PLAYER, 1, True)

        assert db.store.games[1].stage == GameStage.GUESS_SUBMITTED
        assert db.store.games[1].guess_higher is True
        assert db.store.events[-1].payload["guess"] == 1

    @pytest.mark.parametrize("intruder", [OTHER, SETTLER])
    async def test_non_owner_rejected_without_mutation(
        self, ledger: GameLedgerService, db: FakeSession, intruder: Caller
    ) -> None:
        await fund(db, PLAYER, 10)
        await ledger.create_batch(db, PLAYER)
        await ledger.initialize(db, SETTLER, 1, ref(1), 500_000)

        with pytest.raises(UnauthorizedError):
            await ledger.submit_guess(db, intruder, 1, False)

        assert db.store.games[1].stage == GameStage.INITIALIZED
        assert db.store.games[1].guess_higher is None

    async def test_before_initialize(self, ledger: GameLedgerService, db: FakeSession) -> None:
        await fund(db, PLAYER, 10)
        await ledger.create_batch(db, PLAYER)
        with pytest.raises(WrongStageError):
            await ledger.submit_guess(db, PLAYER, 1, True)
        assert db.store.games[1].stage == GameStage.NOT_STARTED

    async def test_second_guess_rejected(self, ledger: GameLedgerService, db: FakeSession) -> None:
        game_id = await guessed_game(ledger, db, guess_higher=True)
        with pytest.raises(WrongStageError):
            await ledger.submit_guess(db, PLAYER, game_id, False)
        assert db.store.games[game_id].guess_higher is True

    async def test_concurrent_guesses_one_wins(
        self, ledger: GameLedgerService, db: FakeSession
    ) -> None:
        await fund(db, PLAYER, 10)
        await ledger.create_batch(db, PLAYER)
        await ledger.initialize(db, SETTLER, 1, ref(1), 500_000)

        results = await asyncio.gather(
            ledger.submit_guess(db, PLAYER, 1, True),
            ledger.submit_guess(db, PLAYER, 1, False),
            return_exceptions=True,
        )

        errors = [r for r in results if isinstance(r, Exception)]
        assert len(errors) == 1
        assert isinstance(errors[0], WrongStageError)
        assert db.store.games[1].guess_higher is True


# ---------------------------------------------------------------------------
# settle
# ---------------------------------------------------------------------------


class TestSettle:
    async def test_win_pays_owner(self, ledger: GameLedgerService, db: FakeSession) -> None:
        game_id = await guessed_game(ledger, db, guess_higher=True)
        before = db.store.accounts[PLAYER.user_id]

        game = await ledger.settle(db, SETTLER, game_id, 600_000)

        assert game.won is True
        assert game.payout == 2 * COST
        assert db.store.accounts[PLAYER.user_id] == before + 2 * COST
        assert db.store.events[-1].event_name == GameEventName.GAME_PLAYED.value
        assert db.store.events[-1].payload["won"] is True

    async def test_loss_pays_nothing(self, ledger: GameLedgerService, db: FakeSession) -> None:
        game_id = await guessed_game(ledger, db, guess_higher=True)
        before = db.store.accounts[PLAYER.user_id]

        game = await ledger.settle(db, SETTLER, game_id, 400_000)

        assert (game.won, game.payout) == (False, 0)
        assert db.store.accounts[PLAYER.user_id] == before

    @pytest.mark.parametrize("guess_higher", [True, False])
    async def test_tie_always_wins(
        self, ledger: GameLedgerService, db: FakeSession, guess_higher: bool
    ) -> None:
        game_id = await guessed_game(ledger, db, guess_higher=guess_higher)
        game = await ledger.settle(db, SETTLER, game_id, 500_000)
        assert game.won is True
        assert game.payout == 2 * COST

    async def test_player_cannot_settle(self, ledger: GameLedgerService, db: FakeSession) -> None:
        game_id = await guessed_game(ledger, db, guess_higher=True)
        with pytest.raises(UnauthorizedError):
            await ledger.settle(db, PLAYER, game_id, 600_000)
        assert db.store.games[game_id].stage == GameStage.GUESS_SUBMITTED

    async def test_settle_before_guess(self, ledger: GameLedgerService, db: FakeSession) -> None:
        await fund(db, PLAYER, 10)
        await ledger.create_batch(db, PLAYER)
        await ledger.initialize(db, SETTLER, 1, ref(1), 500_000)
        with pytest.raises(WrongStageError):
            await ledger.settle(db, SETTLER, 1, 600_000)

    async def test_zero_actual_price(self, ledger: GameLedgerService, db: FakeSession) -> None:
        game_id = await guessed_game(ledger, db, guess_higher=True)
        with pytest.raises(InvalidPriceError):
            await ledger.settle(db, SETTLER, game_id, 0)

    async def test_payout_failure_rolls_back_settlement(
        self, ledger: GameLedgerService, db: FakeSession
    ) -> None:
        await fund(db, PLAYER, 1)
        await ledger.create_batch(db, PLAYER, batch_size=1)
        await ledger.initialize(db, SETTLER, 1, ref(1), 500_000)
        await ledger.submit_guess(db, PLAYER, 1, True)
        events_before = len(db.store.events)

        # House holds 1 x cost, a win needs 2 x cost
        with pytest.raises(PayoutTransferFailedError):
            await ledger.settle(db, SETTLER, 1, 600_000)

        stored = db.store.games[1]
        assert stored.stage == GameStage.GUESS_SUBMITTED
        assert (stored.won, stored.payout, stored.actual_price) == (False, 0, 0)
        assert db.store.accounts[HOUSE_ACCOUNT_ID] == COST
        assert db.store.accounts[PLAYER.user_id] == 0
        assert len(db.store.events) == events_before

    async def test_settle_can_retry_after_house_is_funded(
        self, ledger: GameLedgerService, db: FakeSession
    ) -> None:
        await fund(db, PLAYER, 1)
        await ledger.create_batch(db, PLAYER, batch_size=1)
        await ledger.initialize(db, SETTLER, 1, ref(1), 500_000)
        await ledger.submit_guess(db, PLAYER, 1, True)
        with pytest.raises(PayoutTransferFailedError):
            await ledger.settle(db, SETTLER, 1, 600_000)

        await seed_account(db, HOUSE_ACCOUNT_ID, COST)
        game = await ledger.settle(db, SETTLER, 1, 600_000)

        assert game.stage == GameStage.SETTLED
        assert db.store.accounts[PLAYER.user_id] == 2 * COST

    async def test_settled_game_is_immutable(
        self, ledger: GameLedgerService, db: FakeSession
    ) -> None:
        game_id = await guessed_game(ledger, db, guess_higher=False)
        await ledger.settle(db, SETTLER, game_id, 450_000)
        first_read = await ledger.get_game(db, game_id)

        for call in (
            ledger.settle(db, SETTLER, game_id, 900_000),
            ledger.submit_guess(db, PLAYER, game_id, True),
            ledger.initialize(db, SETTLER, game_id, ref(5), 1),
        ):
            with pytest.raises(StateConflictError):
                await call

        assert await ledger.get_game(db, game_id) == first_read
        assert await ledger.get_game(db, game_id) == first_read


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


class TestQueries:
    async def test_get_missing_game(self, ledger: GameLedgerService, db: FakeSession) -> None:
        with pytest.raises(GameNotFoundError):
            await ledger.get_game(db, 1)

    async def test_list_player_games_paginates_newest_first(
        self, ledger: GameLedgerService, db: FakeSession
    ) -> None:
        await fund(db, PLAYER, 5)
        await ledger.create_batch(db, PLAYER, batch_size=5)

        page1 = await ledger.list_player_games(db, PLAYER.user_id, limit=3)
        page2 = await ledger.list_player_games(
            db, PLAYER.user_id, cursor=page1.next_cursor, limit=3
        )

        assert [g.id for g in page1.items] == [5, 4, 3]
        assert page1.has_more is True
        assert [g.id for g in page2.items] == [2, 1]
        assert page2.has_more is False
        assert page2.next_cursor is None

    async def test_list_filters_by_stage_and_owner(
        self, ledger: GameLedgerService, db: FakeSession
    ) -> None:
        await fund(db, PLAYER, 3)
        await fund(db, OTHER, 3)
        await ledger.create_batch(db, PLAYER, batch_size=3)
        await ledger.create_batch(db, OTHER, batch_size=3)
        await ledger.initialize(db, SETTLER, 2, ref(2), 500_000)

        page = await ledger.list_player_games(db, PLAYER.user_id, stage=GameStage.INITIALIZED)

        assert [g.id for g in page.items] == [2]

    async def test_counts(self, ledger: GameLedgerService, db: FakeSession) -> None:
        await fund(db, PLAYER, 4)
        await fund(db, OTHER, 2)
        await ledger.create_batch(db, PLAYER, batch_size=4)
        await ledger.create_batch(db, OTHER, batch_size=2)
        await ledger.initialize(db, SETTLER, 1, ref(1), 500_000)

        assert await ledger.count_games(db) == 6
        assert await ledger.count_player_games_by_stage(db, PLAYER.user_id) == {
            "NOT_STARTED": 3,
            "INITIALIZED": 1,
            "GUESS_SUBMITTED": 0,
            "SETTLED": 0,
        }

    async def test_counts_for_unknown_player_are_zero(
        self, ledger: GameLedgerService, db: FakeSession
    ) -> None:
        counts = await ledger.count_player_games_by_stage(db, "nobody")
        assert set(counts) == {s.value for s in GameStage}
        assert sum(counts.values()) == 0


# ---------------------------------------------------------------------------
# Locking
# ---------------------------------------------------------------------------


class TestGameLocks:
    async def test_lock_pool_stays_fixed_for_unknown_ids(
        self, ledger: GameLedgerService, db: FakeSession
    ) -> None:
        pool_size = len(ledger._game_locks)

        for game_id in range(1000, 6000):
            with pytest.raises(GameNotFoundError):
                await ledger.submit_guess(db, PLAYER, game_id, True)

        assert len(ledger._game_locks) == pool_size == settings.GAME_LOCK_STRIPES
        assert not any(lock.locked() for lock in ledger._game_locks)

    async def test_games_sharing_a_stripe_both_progress(
        self, ledger: GameLedgerService, db: FakeSession
    ) -> None:
        stripes = len(ledger._game_locks)
        other_id = 1 + stripes
        await fund(db, PLAYER, 2)
        await ledger.create_batch(db, PLAYER, batch_size=1)
        db.store.next_game_id = other_id
        await db.commit()
        await ledger.create_batch(db, PLAYER, batch_size=1)
        assert ledger._lock_for(1) is ledger._lock_for(other_id)

        await asyncio.gather(
            ledger.initialize(db, SETTLER, 1, ref(1), 500_000),
            ledger.initialize(db, SETTLER, other_id, ref(2), 600_000),
        )

        assert db.store.games[1].stage == GameStage.INITIALIZED
        assert db.store.games[other_id].stage == GameStage.INITIALIZED
        assert not any(lock.locked() for lock in ledger._game_locks)
