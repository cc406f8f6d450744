"""Integration tests for poll endpoints."""
import pytest
from datetime import datetime, timedelta, timezone


def create(client, headers, **overrides):
    payload = {"title": "Favourite chain", "options": ["Base", "Optimism", "Arbitrum"]}
    payload.update(overrides)
    return client.post("/api/v1/polls", json=payload, headers=headers)


@pytest.mark.integration
class TestPollCreation:
    """POST /api/v1/polls"""

    def test_create_poll(self, client, auth_headers):
        response = create(client, auth_headers, description="Pick one")

        assert response.status_code == 201
        poll = response.json()["poll"]
        assert poll["title"] == "Favourite chain"
        assert poll["creator_key"] == "1001"
        assert [o["text"] for o in poll["options"]] == ["Base", "Optimism", "Arbitrum"]
        assert poll["total_votes"] == 0

    def test_create_requires_auth(self, client):
        response = create(client, {})
        assert response.status_code == 401

    def test_too_few_options(self, client, auth_headers):
        response = create(client, auth_headers, options=["Only"])

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["error"]["code"] == "VALIDATION_ERROR"

    def test_past_end_time(self, client, auth_headers):
        ends_at = (datetime.now(timezone.utc) - timedelta(hours=1)).isoformat()
        response = create(client, auth_headers, ends_at=ends_at)
        assert response.status_code == 400

    def test_html_tags_stripped_from_title(self, client, auth_headers):
        response = create(client, auth_headers, title="<b>Favourite</b>   chain")

        assert response.status_code == 201
        assert response.json()["poll"]["title"] == "Favourite chain"

    def test_blank_option_rejected_by_schema(self, client, auth_headers):
        response = create(client, auth_headers, options=["Base", "   "])
        assert response.status_code == 422


@pytest.mark.integration
class TestPollReads:

    def test_list_polls(self, client, auth_headers):
        create(client, auth_headers, title="One")
        create(client, auth_headers, title="Two")

        response = client.get("/api/v1/polls")

        assert response.status_code == 200
        assert [p["title"] for p in response.json()["polls"]] == ["Two", "One"]

    def test_get_unknown_poll(self, client):
        response = client.get("/api/v1/polls/999")

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_FOUND"

    def test_anonymous_poll_hides_creator(self, client, auth_headers):
        poll_id = create(client, auth_headers, is_anonymous=True).json()["poll"]["id"]

        poll = client.get(f"/api/v1/polls/{poll_id}").json()["poll"]

        assert poll["creator_key"] is None


@pytest.mark.integration
class TestVoting:
    """POST /api/v1/polls/{id}/vote"""

    def test_vote_and_tally(self, client, auth_headers, other_auth_headers):
        poll_id = create(client, auth_headers).json()["poll"]["id"]

        first = client.post(f"/api/v1/polls/{poll_id}/vote", json={"option_indexes": [1]}, headers=auth_headers)
        client.post(f"/api/v1/polls/{poll_id}/vote", json={"option_indexes": [1]}, headers=other_auth_headers)

        assert first.status_code == 200
        assert first.json() == {"success": True, "poll_id": poll_id, "voted_options": [1]}
        poll = client.get(f"/api/v1/polls/{poll_id}").json()["poll"]
        assert [o["votes"] for o in poll["options"]] == [0, 2, 0]
        assert poll["total_votes"] == 2

    def test_vote_visible_despite_cached_tally(self, client, auth_headers):
        """Reading before voting caches the tally; the vote invalidates it."""
        poll_id = create(client, auth_headers).json()["poll"]["id"]
        client.get(f"/api/v1/polls/{poll_id}")

        client.post(f"/api/v1/polls/{poll_id}/vote", json={"option_indexes": [0]}, headers=auth_headers)

        poll = client.get(f"/api/v1/polls/{poll_id}").json()["poll"]
        assert poll["options"][0]["votes"] == 1

    def test_second_vote_conflicts(self, client, auth_headers):
        poll_id = create(client, auth_headers).json()["poll"]["id"]
        client.post(f"/api/v1/polls/{poll_id}/vote", json={"option_indexes": [0]}, headers=auth_headers)

        response = client.post(f"/api/v1/polls/{poll_id}/vote", json={"option_indexes": [2]}, headers=auth_headers)

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "ALREADY_VOTED"

    def test_out_of_range_option(self, client, auth_headers):
        poll_id = create(client, auth_headers).json()["poll"]["id"]

        response = client.post(f"/api/v1/polls/{poll_id}/vote", json={"option_indexes": [7]}, headers=auth_headers)

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_OPTION"

    def test_single_choice_rejects_many(self, client, auth_headers):
        poll_id = create(client, auth_headers).json()["poll"]["id"]

        response = client.post(
            f"/api/v1/polls/{poll_id}/vote", json={"option_indexes": [0, 1]}, headers=auth_headers
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "TOO_MANY_OPTIONS"

    def test_multiple_choice(self, client, auth_headers):
        poll_id = create(client, auth_headers, is_multiple_choice=True).json()["poll"]["id"]

        response = client.post(
            f"/api/v1/polls/{poll_id}/vote", json={"option_indexes": [0, 2, 2]}, headers=auth_headers
        )

        assert response.status_code == 200
        assert response.json()["voted_options"] == [0, 2]

    def test_vote_status(self, client, auth_headers):
        poll_id = create(client, auth_headers).json()["poll"]["id"]
        client.post(f"/api/v1/polls/{poll_id}/vote", json={"option_indexes": [2]}, headers=auth_headers)

        voted = client.get(f"/api/v1/polls/{poll_id}/vote", params={"voter_key": "1001"}).json()
        not_voted = client.get(f"/api/v1/polls/{poll_id}/vote", params={"voter_key": "1002"}).json()

        assert voted == {"voted": True, "voted_options": [2]}
        assert not_voted == {"voted": False, "voted_options": []}

    def test_vote_status_unknown_poll(self, client):
        response = client.get("/api/v1/polls/9999/vote", params={"voter_key": "1001"})

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_FOUND"

    def test_vote_requires_auth(self, client, auth_headers):
        poll_id = create(client, auth_headers).json()["poll"]["id"]
        response = client.post(f"/api/v1/polls/{poll_id}/vote", json={"option_indexes": [0]})
        assert response.status_code == 401
