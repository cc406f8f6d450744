"""Integration tests for reward listing and claims."""
import pytest

from app.db.models import RewardClaim, Winner
from app.services.winners import register_winner
from tests.factories import TX_A, TX_B, WALLET_A


@pytest.fixture
def reward(db_session, quiz_factory):
    """A pending reward of 333 for WALLET_A."""
    quiz = quiz_factory()
    register_winner(db_session, quiz.id, WALLET_A, 4000, user_key="1001")
    return db_session.query(RewardClaim).one()


@pytest.mark.integration
class TestListRewards:
    """GET /api/v1/rewards"""

    def test_lists_pending_reward(self, client, auth_headers, reward):
        response = client.get("/api/v1/rewards", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["rewards"][0]["id"] == str(reward.id)
        assert data["rewards"][0]["amount"] == "333"
        assert data["summary"]["total_pending"] == "333"
        assert data["summary"]["claimed_count"] == 0

    def test_other_wallet_sees_nothing(self, client, other_auth_headers, reward):
        data = client.get("/api/v1/rewards", headers=other_auth_headers).json()
        assert data["rewards"] == []

    def test_requires_auth(self, client):
        assert client.get("/api/v1/rewards").status_code == 401


@pytest.mark.integration
class TestClaim:
    """POST /api/v1/rewards/{claim_id}/claim"""

    def test_claim(self, client, auth_headers, reward):
        response = client.post(f"/api/v1/rewards/{reward.id}/claim", json={"tx_hash": TX_A}, headers=auth_headers)

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "claim_id": reward.id,
            "tx_hash": TX_A,
            "status": "claimed",
            "replay": False,
        }

    def test_replay_succeeds(self, client, auth_headers, reward):
        client.post(f"/api/v1/rewards/{reward.id}/claim", json={"tx_hash": TX_A}, headers=auth_headers)

        response = client.post(f"/api/v1/rewards/{reward.id}/claim", json={"tx_hash": TX_A}, headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["replay"] is True
        assert response.json()["tx_hash"] == TX_A

    def test_different_tx_conflicts(self, client, auth_headers, reward):
        client.post(f"/api/v1/rewards/{reward.id}/claim", json={"tx_hash": TX_A}, headers=auth_headers)

        response = client.post(f"/api/v1/rewards/{reward.id}/claim", json={"tx_hash": TX_B}, headers=auth_headers)

        assert response.status_code == 409
        error = response.json()["error"]
        assert error["code"] == "ALREADY_CLAIMED"
        assert error["existing_tx_hash"] == TX_A

    def test_claim_shows_on_leaderboard(self, client, auth_headers, reward):
        client.get(f"/api/v1/quizzes/{reward.quiz_id}/leaderboard")

        client.post(f"/api/v1/rewards/{reward.id}/claim", json={"tx_hash": TX_A}, headers=auth_headers)

        entries = client.get(f"/api/v1/quizzes/{reward.quiz_id}/leaderboard").json()["entries"]
        assert entries[0]["claimed"] is True

    def test_foreign_claim_not_found(self, client, other_auth_headers, reward):
        response = client.post(
            f"/api/v1/rewards/{reward.id}/claim", json={"tx_hash": TX_A}, headers=other_auth_headers
        )
        assert response.status_code == 404

    def test_malformed_tx_hash(self, client, auth_headers, reward):
        response = client.post(
            f"/api/v1/rewards/{reward.id}/claim", json={"tx_hash": "not-a-hash"}, headers=auth_headers
        )
        assert response.status_code == 422

    def test_legacy_reward_id(self, client, db_session, auth_headers, quiz_factory):
        quiz = quiz_factory()
        winner = Winner(quiz_id=quiz.id, wallet_address=WALLET_A, slot=1, completion_time_ms=1000, reward_amount="50")
        db_session.add(winner)
        db_session.commit()

        response = client.post(
            f"/api/v1/rewards/winner-{winner.id}/claim", json={"tx_hash": TX_A}, headers=auth_headers
        )

        assert response.status_code == 200
        assert response.json()["claim_id"] == db_session.query(RewardClaim).one().id


@pytest.mark.integration
class TestClaimAll:
    """POST /api/v1/rewards/claim-all"""

    def test_mixed_batch(self, client, auth_headers, reward):
        response = client.post(
            "/api/v1/rewards/claim-all",
            json={"claims": [
                {"claim_id": reward.id, "tx_hash": TX_A},
                {"claim_id": "winner-999", "tx_hash": TX_B},
            ]},
            headers=auth_headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["succeeded"] == 1
        assert data["failed"] == 1
        assert data["results"][0]["success"] is True
        assert data["results"][1]["error_code"] == "NOT_FOUND"

    def test_empty_batch_rejected(self, client, auth_headers):
        response = client.post("/api/v1/rewards/claim-all", json={"claims": []}, headers=auth_headers)
        assert response.status_code == 422
