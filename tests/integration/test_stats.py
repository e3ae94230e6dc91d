"""
Integration tests for user statistics and the leaderboard.
"""

import pytest

API = "/api/v1"


class TestUserStats:
    """Test reading and writing statistics."""

    def test_stats_created_on_first_read(self, client, register):
        user = register("alice")

        response = client.get(f"{API}/stats/{user['id']}", headers=user["headers"])

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["user_id"] == user["id"]
        assert data["problems_solved"] == 0
        assert data["average_score"] == 0
        assert data["time_spent"] == 0

    def test_stats_for_missing_user(self, client, register):
        response = client.get(f"{API}/stats/9999", headers=register("alice")["headers"])

        assert response.status_code == 404

    def test_anyone_reads_stats(self, client, register):
        alice = register("alice")
        bob = register("bob")

        assert client.get(f"{API}/stats/{alice['id']}", headers=bob["headers"]).status_code == 200

    def test_increment_running_average(self, client, register):
        """Test scores 10 then 20 leave two solved with an average of 15."""
        user = register("alice")

        first = client.post(
            f"{API}/stats/{user['id']}/increment",
            headers=user["headers"],
            json={"score_increment": 10, "time_spent": 30},
        )
        assert first.status_code == 200
        assert first.json()["data"]["problems_solved"] == 1
        assert first.json()["data"]["average_score"] == pytest.approx(10)

        second = client.post(
            f"{API}/stats/{user['id']}/increment",
            headers=user["headers"],
            json={"score_increment": 20, "time_spent": 15},
        )
        data = second.json()["data"]
        assert data["problems_solved"] == 2
        assert data["average_score"] == pytest.approx(15)
        assert data["time_spent"] == 45

    def test_increment_existing_row(self, client, register):
        user = register("alice")
        client.get(f"{API}/stats/{user['id']}", headers=user["headers"])

        response = client.post(f"{API}/stats/{user['id']}/increment", headers=user["headers"], json={"score_increment": 80})

        assert response.json()["data"]["problems_solved"] == 1
        assert response.json()["data"]["average_score"] == pytest.approx(80)

    def test_only_self_or_admin_writes(self, client, register, admin):
        alice = register("alice")
        bob = register("bob")

        denied = client.post(f"{API}/stats/{alice['id']}/increment", headers=bob["headers"], json={"score_increment": 5})
        assert denied.status_code == 403

        denied = client.put(f"{API}/stats/{alice['id']}", headers=bob["headers"], json={"problems_solved": 100})
        assert denied.status_code == 403

        allowed = client.post(f"{API}/stats/{alice['id']}/increment", headers=admin["headers"], json={"score_increment": 5})
        assert allowed.status_code == 200

    def test_update_stats(self, client, register):
        user = register("alice")

        response = client.put(
            f"{API}/stats/{user['id']}",
            headers=user["headers"],
            json={"problems_solved": 3, "time_spent": 90},
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["problems_solved"] == 3
        assert data["time_spent"] == 90

    @pytest.mark.parametrize("field", ["problems_solved", "average_score", "time_spent"])
    def test_counters_cannot_be_nulled(self, client, register, field):
        user = register("alice")

        response = client.put(f"{API}/stats/{user['id']}", headers=user["headers"], json={field: None})

        assert response.status_code == 400
        assert response.json()["error"] == "VALIDATION_ERROR"

    def test_negative_values_rejected(self, client, register):
        user = register("alice")

        response = client.put(f"{API}/stats/{user['id']}", headers=user["headers"], json={"problems_solved": -1})

        assert response.status_code == 400


class TestStudyPlan:
    def test_update_study_plan(self, client, register):
        user = register("alice")
        plan = {"week1": ["arrays", "strings"], "week2": ["graphs"]}

        response = client.put(f"{API}/stats/{user['id']}/study-plan", headers=user["headers"], json={"study_plan": plan})

        assert response.status_code == 200
        assert response.json()["data"]["study_plan"] == plan

    def test_study_plan_required(self, client, register):
        user = register("alice")

        response = client.put(f"{API}/stats/{user['id']}/study-plan", headers=user["headers"], json={})

        assert response.status_code == 400
        assert response.json()["message"] == "Study plan is required"

    def test_other_users_plan_forbidden(self, client, register):
        alice = register("alice")
        bob = register("bob")

        response = client.put(
            f"{API}/stats/{alice['id']}/study-plan",
            headers=bob["headers"],
            json={"study_plan": {"week1": []}},
        )

        assert response.status_code == 403


class TestLeaderboard:
    """Test leaderboard ordering and parameters."""

    @pytest.fixture
    def players(self, client, register):
        users = {name: register(name) for name in ("alice", "bob", "carol")}
        scores = {"alice": [50], "bob": [90, 70], "carol": [100]}
        for name, values in scores.items():
            for score in values:
                client.post(
                    f"{API}/stats/{users[name]['id']}/increment",
                    headers=users[name]["headers"],
                    json={"score_increment": score, "time_spent": 10 * len(name)},
                )
        return users

    def test_default_sort_problems_solved(self, client, players):
        response = client.get(f"{API}/stats/leaderboard", headers=players["alice"]["headers"])

        assert response.status_code == 200
        entries = response.json()["data"]
        assert entries[0]["username"] == "bob"
        assert entries[0]["problems_solved"] == 2

    def test_sort_by_average_score(self, client, players):
        response = client.get(
            f"{API}/stats/leaderboard",
            params={"sort_by": "averageScore"},
            headers=players["alice"]["headers"],
        )

        assert [e["username"] for e in response.json()["data"]] == ["carol", "bob", "alice"]

    def test_limit(self, client, players):
        response = client.get(
            f"{API}/stats/leaderboard",
            params={"sort_by": "timeSpent", "limit": 1},
            headers=players["alice"]["headers"],
        )

        assert response.json()["count"] == 1

    @pytest.mark.parametrize("params", [
        {"sort_by": "problems_solved"},
        {"sort_by": "username"},
        {"limit": 0},
        {"limit": 101},
    ])
    def test_invalid_parameters(self, client, register, params):
        user = register("alice")

        response = client.get(f"{API}/stats/leaderboard", params=params, headers=user["headers"])

        assert response.status_code == 400
