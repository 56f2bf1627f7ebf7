import unittest
from decimal import Decimal

from arcade_oracle import canonical
from arcade_oracle.attestation import AttestationSigner, verify
from arcade_oracle.errors import (
    InvalidBetError,
    NonceReusedError,
    SessionAlreadyActiveError,
    SessionNotFoundError,
)
from arcade_oracle.services.fair_games import FairGameService
from arcade_oracle.session_store import InMemorySessionStore
from tests.helpers import PLAYER, TEST_PRIVATE_KEY, TEST_SIGNER_ADDRESS, FakeClock, StubRng

CHECKSUM_PLAYER = canonical.normalize_address(PLAYER)


def make_service(rng=None, clock=None) -> FairGameService:
    clock = clock or FakeClock()
    return FairGameService(
        signer=AttestationSigner(TEST_PRIVATE_KEY),
        store=InMemorySessionStore(ttl_seconds=300, clock=clock),
        tower_secret=b"test-tower-secret",
        rng=rng,
        clock=clock,
    )


class TestDiceService(unittest.IsolatedAsyncioTestCase):

    async def test_roll_signs_drawn_result(self):
        service = make_service(rng=StubRng(integers=[10]))
        outcome = await service.roll_dice(PLAYER, 1, 25, True, Decimal("4"))
        self.assertEqual(outcome.result, 10)
        self.assertTrue(outcome.won)
        self.assertEqual(outcome.multiplier, Decimal("3.75"))
        self.assertEqual(outcome.win_chance, 24)
        self.assertEqual(outcome.payout, Decimal("15"))
        message = canonical.dice_message(PLAYER, 1, 25, True, 10)
        self.assertTrue(verify(message, outcome.signature, TEST_SIGNER_ADDRESS))

    async def test_boundary_roll_loses(self):
        service = make_service(rng=StubRng(integers=[25, 25]))
        self.assertFalse((await service.roll_dice(PLAYER, 1, 25, True)).won)
        self.assertFalse((await service.roll_dice(PLAYER, 2, 25, False)).won)

    async def test_repeated_nonce_returns_first_roll(self):
        service = make_service(rng=StubRng(integers=[90, 3]))
        first = await service.roll_dice(PLAYER, 1, 50, True)
        again = await service.roll_dice(PLAYER, 1, 50, True)
        self.assertEqual(first.result, 90)
        self.assertEqual(again.result, 90)
        self.assertFalse(again.won)
        self.assertEqual(again.signature, first.signature)

    async def test_repeated_nonce_with_other_bet_rejected(self):
        service = make_service(rng=StubRng(integers=[90, 3, 3]))
        await service.roll_dice(PLAYER, 1, 50, True)
        with self.assertRaises(NonceReusedError):
            await service.roll_dice(PLAYER, 1, 50, False)
        with self.assertRaises(NonceReusedError):
            await service.roll_dice(PLAYER, 1, 95, True)

    async def test_invalid_target_rejected_before_draw(self):
        rng = StubRng(integers=[10])
        service = make_service(rng=rng)
        with self.assertRaises(InvalidBetError):
            await service.roll_dice(PLAYER, 1, 99, True)
        self.assertEqual(rng.calls, [])

    async def test_invalid_player_rejected_before_draw(self):
        rng = StubRng(integers=[10])
        service = make_service(rng=rng)
        with self.assertRaises(InvalidBetError):
            await service.roll_dice("0xnope", 1, 50, True)
        self.assertEqual(rng.calls, [])


class TestTowerService(unittest.TestCase):

    def setUp(self):
        self.service = make_service()

    def test_reveal_is_stable_per_game(self):
        first = self.service.reveal_tower(PLAYER, 4, 0, 7)
        again = self.service.reveal_tower(PLAYER, 4, 0, 7)
        self.assertEqual(first.death_tile, again.death_tile)
        self.assertEqual(first.death_tile, self.service.death_tiles(CHECKSUM_PLAYER, 4)[0])

    def test_reveal_every_row(self):
        for row, tiles in enumerate(self.service.tower_pattern):
            outcome = self.service.reveal_tower(PLAYER, 5, row, tiles)
            self.assertTrue(0 <= outcome.death_tile < tiles)
            message = canonical.tower_message(PLAYER, 5, row, outcome.death_tile)
            self.assertTrue(verify(message, outcome.signature, TEST_SIGNER_ADDRESS))

    def test_click_evaluation(self):
        death_tile = self.service.death_tiles(CHECKSUM_PLAYER, 6)[0]
        lost = self.service.reveal_tower(PLAYER, 6, 0, 7, tile=death_tile)
        self.assertFalse(lost.safe)
        safe_tile = (death_tile + 1) % 7
        won = self.service.reveal_tower(PLAYER, 6, 0, 7, tile=safe_tile, bet_amount=Decimal("10"))
        self.assertTrue(won.safe)
        self.assertEqual(won.multiplier, Decimal("1.05"))
        self.assertEqual(won.payout, Decimal("10.5"))

    def test_invalid_requests(self):
        with self.assertRaises(InvalidBetError):
            self.service.reveal_tower(PLAYER, 1, 0, 6)
        with self.assertRaises(InvalidBetError):
            self.service.reveal_tower(PLAYER, 1, 20, 4)
        with self.assertRaises(InvalidBetError):
            self.service.reveal_tower(PLAYER, 1, 0, 7, tile=7)


class TestCrashService(unittest.IsolatedAsyncioTestCase):

    async def asyncSetUp(self):
        self.clock = FakeClock()
        # u = 0.5 -> crash point 20000 (2.00x)
        self.service = make_service(rng=StubRng(uniforms=[0.5, 0.5]), clock=self.clock)

    async def test_start_then_cashout(self):
        game_id = await self.service.start_crash(PLAYER, 1)
        self.assertEqual(game_id, f"{CHECKSUM_PLAYER}-1")
        self.clock.advance(10)
        outcome = await self.service.resolve_crash(PLAYER, 1, "cashout", 15000, Decimal("10"))
        self.assertEqual(outcome.crash_point, 20000)
        self.assertTrue(outcome.won)
        self.assertEqual(outcome.payout, Decimal("15"))
        message = canonical.crash_message(PLAYER, 1, 20000)
        self.assertTrue(verify(message, outcome.signature, TEST_SIGNER_ADDRESS))

    async def test_second_resolution_refused(self):
        await self.service.start_crash(PLAYER, 2)
        self.clock.advance(10)
        await self.service.resolve_crash(PLAYER, 2, "cashout", 15000)
        with self.assertRaises(SessionNotFoundError):
            await self.service.resolve_crash(PLAYER, 2, "cashout", 15000)
        with self.assertRaises(SessionNotFoundError):
            await self.service.resolve_crash(PLAYER, 2, "crash")

    async def test_resolve_without_start(self):
        with self.assertRaises(SessionNotFoundError):
            await self.service.resolve_crash(PLAYER, 3, "crash")

    async def test_restart_rejected(self):
        await self.service.start_crash(PLAYER, 4)
        with self.assertRaises(SessionAlreadyActiveError):
            await self.service.start_crash(PLAYER, 4)

    async def test_settled_nonce_cannot_be_replayed(self):
        await self.service.start_crash(PLAYER, 10)
        settled = await self.service.resolve_crash(PLAYER, 10, "crash")
        with self.assertRaises(SessionAlreadyActiveError):
            await self.service.start_crash(PLAYER, 10)
        with self.assertRaises(SessionNotFoundError):
            await self.service.resolve_crash(PLAYER, 10, "crash")
        self.assertEqual(settled.crash_point, 20000)

    async def test_cashout_above_crash_point_not_won(self):
        await self.service.start_crash(PLAYER, 5)
        self.clock.advance(10)
        outcome = await self.service.resolve_crash(PLAYER, 5, "cashout", 25000)
        self.assertFalse(outcome.won)
        self.assertEqual(outcome.crash_point, 20000)

    async def test_cashout_too_early_not_won(self):
        await self.service.start_crash(PLAYER, 6)
        outcome = await self.service.resolve_crash(PLAYER, 6, "cashout", 19500)
        self.assertFalse(outcome.won)

    async def test_crash_action(self):
        await self.service.start_crash(PLAYER, 7)
        outcome = await self.service.resolve_crash(PLAYER, 7, "crash")
        self.assertFalse(outcome.won)
        self.assertEqual(outcome.multiplier, Decimal(0))

    async def test_missing_cashout_multiplier_keeps_session(self):
        await self.service.start_crash(PLAYER, 8)
        with self.assertRaises(InvalidBetError):
            await self.service.resolve_crash(PLAYER, 8, "cashout", None)
        outcome = await self.service.resolve_crash(PLAYER, 8, "crash")
        self.assertEqual(outcome.crash_point, 20000)

    async def test_unknown_action(self):
        with self.assertRaises(InvalidBetError):
            await self.service.resolve_crash(PLAYER, 9, "start")


if __name__ == "__main__":
    unittest.main()
