"""
Tests for the /api/users endpoints, including lockout votes on users and
external profile refresh.
"""

from unittest.mock import MagicMock

import main

MISSING_ID = "5f0000000000000000000000"


class TestUserCrud:

    def test_create_and_get(self, client):
        response = client.post("/api/users", json={"name": "  Priya ", "github": "priyagithub", "skills": ["ML"]})

        assert response.status_code == 201
        user = response.json()["data"]
        assert user["name"] == "Priya"
        assert user["posts"] == []
        assert user["votes"] == {"upvotes": 0, "downvotes": 0, "voters": []}

        fetched = client.get(f"/api/users/{user['id']}").json()["data"]
        assert fetched["github"] == "priyagithub"
        assert fetched["skills"] == ["ML"]

    def test_create_requires_name(self, client):
        assert client.post("/api/users", json={"github": "x"}).status_code == 400
        assert client.post("/api/users", json={"name": "   "}).status_code == 400

    def test_list_users(self, client, make_user):
        make_user("A")
        make_user("B")

        body = client.get("/api/users").json()

        assert body["count"] == 2
        assert [u["name"] for u in body["data"]] == ["A", "B"]

    def test_partial_update(self, client, make_user):
        user_id = make_user("Rahul", leetcode="rahulcodes")

        data = client.put(f"/api/users/{user_id}", json={"bio": "Learning cybersecurity."}).json()["data"]

        assert data["bio"] == "Learning cybersecurity."
        assert data["name"] == "Rahul"
        assert data["leetcode"] == "rahulcodes"

    def test_empty_update_returns_user(self, client, make_user):
        user_id = make_user("Rahul")
        response = client.put(f"/api/users/{user_id}", json={})
        assert response.status_code == 200
        assert response.json()["data"]["name"] == "Rahul"

    def test_update_missing_user(self, client):
        assert client.put(f"/api/users/{MISSING_ID}", json={"bio": "x"}).status_code == 404

    def test_delete_user_leaves_posts(self, client, make_post):
        post_id, author = make_post()

        assert client.delete(f"/api/users/{author}").status_code == 200
        assert client.get(f"/api/users/{author}").status_code == 404
        assert client.get(f"/api/posts/{post_id}").json()["data"]["posted_by"] == author


class TestUserVotes:

    def test_vote_once(self, client, make_user):
        target, voter = make_user("Target"), make_user("Voter")
        url = f"/api/users/{target}/vote"

        first = client.post(url, json={"voteType": "downvote", "voterId": voter})
        second = client.post(url, json={"voteType": "upvote", "voterId": voter})

        assert first.status_code == 200
        assert first.json()["data"]["votes"]["downvotes"] == 1
        assert second.status_code == 409
        assert client.get(f"/api/users/{target}").json()["data"]["votes"]["upvotes"] == 0

    def test_vote_with_uppercased_voter_conflicts(self, client, make_user):
        target, voter = make_user("Target"), make_user("Voter")
        url = f"/api/users/{target}/vote"

        assert client.post(url, json={"voteType": "upvote", "voterId": voter}).status_code == 200
        second = client.post(url, json={"voteType": "upvote", "voterId": voter.upper()})

        assert second.status_code == 409
        assert client.get(f"/api/users/{target}").json()["data"]["votes"]["voters"] == [voter]

    def test_vote_missing_user(self, client, make_user):
        response = client.post(f"/api/users/{MISSING_ID}/vote", json={"voteType": "upvote", "voterId": make_user()})
        assert response.status_code == 404
        assert response.json()["message"] == "User not found."

    def test_vote_requires_voter(self, client, make_user):
        assert client.post(f"/api/users/{make_user()}/vote", json={"voteType": "upvote"}).status_code == 400


class TestProfileRefresh:

    def _fetcher(self, fields):
        fetcher = MagicMock()
        fetcher.fetch.return_value = fields
        main.app.dependency_overrides[main.get_profile_fetcher] = lambda: fetcher
        return fetcher

    def test_single_profile(self, client, make_user):
        user_id = make_user("Sagar", github="sagargit")
        self._fetcher({"profile_picture": "https://avatars/x.png", "activity": [1, 0, 2]})

        response = client.post(f"/api/users/{user_id}/profile")

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["profile_picture"] == "https://avatars/x.png"
        assert data["activity"] == [1, 0, 2]

    def test_single_profile_nothing_to_update(self, client, make_user):
        user_id = make_user("Sagar")
        self._fetcher({})

        response = client.post(f"/api/users/{user_id}/profile")

        assert response.status_code == 404
        assert response.json()["message"] == "No data to update."

    def test_refresh_all_skips_users_without_handles(self, client, make_user):
        make_user("NoHandles")
        make_user("Sagar", leetcode="sagarleet")
        fetcher = self._fetcher({"activity": [3]})

        body = client.post("/api/users/profiles").json()

        assert body["updated"] == 1
        assert fetcher.fetch.call_count == 1

    def test_refresh_all_without_users(self, client):
        self._fetcher({})
        assert client.post("/api/users/profiles").status_code == 404
