import unittest
from datetime import date, timedelta
from unittest.mock import AsyncMock, patch

from sqlalchemy.exc import SQLAlchemyError

from arcade_oracle.crud import CreateData
from arcade_oracle.domain.activity_rules import week_number
from tests.helpers import OTHER_PLAYER, PLAYER
from tests.test_api import ApiTestCase


class TestUserEndpoints(ApiTestCase):

    def register(self, wallet: str = PLAYER, username: str = "lucky_7"):
        return self.client.post("/api/users", json={"wallet": wallet, "username": username})

    def test_unregistered_wallet(self):
        body = self.client.get("/api/users", params={"wallet": PLAYER}).json()
        self.assertFalse(body["registered"])
        self.assertIsNone(body["user"])

    def test_register_and_read(self):
        response = self.register()
        self.assertEqual(response.status_code, 200)
        user = response.json()["user"]
        self.assertEqual(user["wallet_address"], PLAYER)
        self.assertEqual(user["username_lower"], "lucky_7")
        self.assertEqual(user["username_changes_remaining"], 1)

        body = self.client.get("/api/users", params={"wallet": PLAYER.upper().replace("0X", "0x")}).json()
        self.assertTrue(body["registered"])
        self.assertEqual(body["user"]["username_display"], "lucky_7")

    def test_duplicate_wallet(self):
        self.register()
        response = self.register(username="another")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["detail"], "Wallet already registered")

    def test_username_taken_case_insensitive(self):
        self.register()
        response = self.register(wallet=OTHER_PLAYER, username="LUCKY_7")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["detail"], "Username already taken")

    def test_bad_username(self):
        for username in ("ab", "has space", "x" * 17):
            self.assertEqual(self.register(username=username).status_code, 400)

    def test_check_username(self):
        self.assertTrue(self.client.get("/api/users/check", params={"username": "lucky_7"}).json()["available"])
        self.register()
        self.assertFalse(self.client.get("/api/users/check", params={"username": "Lucky_7"}).json()["available"])
        invalid = self.client.get("/api/users/check", params={"username": "!"}).json()
        self.assertFalse(invalid["available"])
        self.assertEqual(invalid["error"], "Invalid username format")

    def test_rename_once(self):
        self.register()
        response = self.client.patch("/api/users", json={"wallet": PLAYER, "username": "renamed"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["user"]["username_display"], "renamed")
        self.assertEqual(response.json()["user"]["username_changes_remaining"], 0)

        response = self.client.patch("/api/users", json={"wallet": PLAYER, "username": "again"})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["detail"], "No username changes remaining")

    def test_rename_unknown_wallet(self):
        response = self.client.patch("/api/users", json={"wallet": OTHER_PLAYER, "username": "renamed"})
        self.assertEqual(response.status_code, 404)


class TestGameRecordEndpoints(ApiTestCase):

    def setUp(self):
        super().setUp()
        self.client.post("/api/users", json={"wallet": PLAYER, "username": "lucky_7"})

    def record(self, wallet: str = PLAYER, **overrides):
        payload = {"wallet": wallet, "game": "dice", "bet_amount": 2.0, "payout": 7.5, "multiplier": 3.75, "won": True}
        payload.update(overrides)
        return self.client.post("/api/games", json=payload)

    def test_record_starts_streak(self):
        response = self.record()
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertTrue(body["success"])
        self.assertEqual(body["streak"], 1)
        self.assertEqual(body["session"]["game"], "dice")
        self.assertEqual(body["session"]["week_number"], week_number(date.today()))

        # same day keeps the streak
        self.assertEqual(self.record(won=False, payout=0.0).json()["streak"], 1)

    def test_streak_grows_on_consecutive_days(self):
        yesterday = date.today() - timedelta(days=1)
        with patch("arcade_oracle.routers.players.date") as fake_date:
            fake_date.today.return_value = yesterday
            self.assertEqual(self.record().json()["streak"], 1)
        self.assertEqual(self.record().json()["streak"], 2)

    def test_unregistered_wallet(self):
        response = self.record(wallet=OTHER_PLAYER)
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["detail"], "User not registered")

    def test_failed_insert_leaves_streak_untouched(self):
        failing = AsyncMock(side_effect=SQLAlchemyError("disk full"))
        with patch.object(CreateData, "stage_game_session", failing):
            response = self.record()
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json()["detail"], "Failed to record game")

        user = self.client.get("/api/users", params={"wallet": PLAYER}).json()["user"]
        self.assertEqual(user["current_streak"], 0)
        self.assertIsNone(user["last_played_date"])
        self.assertEqual(self.client.get("/api/games", params={"wallet": PLAYER}).json()["games"], [])

        self.assertEqual(self.record().json()["streak"], 1)

    def test_invalid_game(self):
        self.assertEqual(self.record(game="slots").status_code, 400)

    def test_recent_games(self):
        self.record()
        self.record(game="crash", won=False, payout=0.0, multiplier=0.0)
        body = self.client.get("/api/games", params={"wallet": PLAYER, "limit": 1}).json()
        self.assertEqual(len(body["games"]), 1)
        body = self.client.get("/api/games", params={"wallet": PLAYER}).json()
        self.assertEqual(len(body["games"]), 2)

    def test_recent_games_needs_wallet(self):
        self.assertEqual(self.client.get("/api/games").status_code, 400)


if __name__ == "__main__":
    unittest.main()
