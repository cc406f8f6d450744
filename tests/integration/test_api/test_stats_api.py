"""Integration tests for the global leaderboard and profile stats endpoints."""
import pytest

from app.services.attempt import start_attempt
from app.services.winners import register_winner
from tests.factories import WALLET_A, WALLET_B


@pytest.fixture
def results(db_session, quiz_factory):
    quiz = quiz_factory()
    start_attempt(db_session, quiz.id, WALLET_A)
    start_attempt(db_session, quiz.id, WALLET_B)
    register_winner(db_session, quiz.id, WALLET_A, 2500)
    return quiz


@pytest.mark.integration
class TestGlobalLeaderboard:
    """GET /api/v1/leaderboard"""

    def test_leaderboard(self, client, results):
        response = client.get("/api/v1/leaderboard")

        assert response.status_code == 200
        data = response.json()
        assert data["period"] == "all"
        assert data["total_players"] == 2
        assert data["leaderboard"][0] == {
            "rank": 1,
            "wallet_address": WALLET_A,
            "total_wins": 1,
            "total_rewards": "333",
            "total_attempts": 1,
            "avg_completion_time_ms": 2500,
            "best_slot": 1,
        }
        assert data["leaderboard"][1]["wallet_address"] == WALLET_B
        assert data["leaderboard"][1]["total_wins"] == 0

    def test_period_and_limit(self, client, results):
        data = client.get("/api/v1/leaderboard", params={"period": "week", "limit": 1}).json()

        assert data["period"] == "week"
        assert len(data["leaderboard"]) == 1

    def test_unknown_period(self, client):
        response = client.get("/api/v1/leaderboard", params={"period": "decade"})

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    def test_limit_bounds(self, client):
        assert client.get("/api/v1/leaderboard", params={"limit": 101}).status_code == 422


@pytest.mark.integration
class TestProfileStats:
    """GET /api/v1/profile/stats"""

    def test_profile_stats(self, client, results):
        response = client.get("/api/v1/profile/stats", params={"wallet": WALLET_A})

        assert response.status_code == 200
        assert response.json() == {
            "wallet_address": WALLET_A,
            "total_attempts": 1,
            "total_wins": 1,
            "total_rewards": "333",
        }

    def test_wallet_required(self, client):
        assert client.get("/api/v1/profile/stats").status_code == 422

    def test_malformed_wallet(self, client):
        response = client.get("/api/v1/profile/stats", params={"wallet": "0x123"})

        assert response.status_code == 400
