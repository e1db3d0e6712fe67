"""
Tests for the GitHub / LeetCode profile fetcher with a mocked HTTP session.
"""

from unittest.mock import MagicMock

import requests

from profiles import ProfileFetcher, last_days


def response(json_data=None, status_error=None):
    resp = MagicMock()
    resp.json.return_value = json_data
    if status_error:
        resp.raise_for_status.side_effect = status_error
    return resp


def github_payload(counts):
    days = [{"contributionCount": c, "date": f"2024-01-{i + 1:02d}"} for i, c in enumerate(counts)]
    weeks = [{"contributionDays": days[i:i + 7]} for i in range(0, len(days), 7)]
    return {"data": {"user": {
        "avatarUrl": "https://avatars.example/u.png",
        "login": "sagargit",
        "bio": "Full-stack enthusiast",
        "url": "https://github.com/sagargit",
        "contributionsCollection": {"contributionCalendar": {"weeks": weeks}},
    }}}


class TestGithub:

    def test_fetch_github(self):
        session = MagicMock()
        session.post.return_value = response(github_payload(list(range(40))))
        fetcher = ProfileFetcher(github_token="tok", session=session)

        fields = fetcher.fetch_github("sagargit")

        assert fields["profile_picture"] == "https://avatars.example/u.png"
        assert fields["profile_url"] == "https://github.com/sagargit"
        assert fields["readme"] == "Full-stack enthusiast"
        assert fields["activity"] == list(range(10, 40))
        assert session.post.call_args.kwargs["headers"] == {"Authorization": "Bearer tok"}

    def test_no_token_skips_github(self):
        session = MagicMock()
        assert ProfileFetcher(github_token="", session=session).fetch_github("sagargit") is None
        session.post.assert_not_called()

    def test_http_error_returns_none(self):
        session = MagicMock()
        session.post.return_value = response(status_error=requests.HTTPError("502 Bad Gateway"))
        assert ProfileFetcher(github_token="tok", session=session).fetch_github("sagargit") is None

    def test_unknown_user_returns_none(self):
        session = MagicMock()
        session.post.return_value = response({"data": {"user": None}})
        assert ProfileFetcher(github_token="tok", session=session).fetch_github("ghost") is None


class TestLeetcode:

    def test_fetch_leetcode(self):
        session = MagicMock()
        session.get.return_value = response({"1704067200": 2, "1704153600": 0, "1704240000": 5})

        fields = ProfileFetcher(github_token="", session=session).fetch_leetcode("sagarleet")

        assert fields == {"activity": [2, 0, 5]}
        assert session.get.call_args[0][0].endswith("/sagarleet/calendar")

    def test_connection_error_returns_none(self):
        session = MagicMock()
        session.get.side_effect = requests.ConnectionError("down")
        assert ProfileFetcher(github_token="", session=session).fetch_leetcode("sagarleet") is None


class TestFetch:

    def test_github_activity_wins(self):
        session = MagicMock()
        session.get.return_value = response({"a": 9})
        session.post.return_value = response(github_payload([1, 2, 3]))
        fetcher = ProfileFetcher(github_token="tok", session=session)

        fields = fetcher.fetch({"github": "sagargit", "leetcode": "sagarleet"})

        assert fields["activity"] == [1, 2, 3]
        assert fields["profile_url"] == "https://github.com/sagargit"

    def test_failing_sources_give_empty_update(self):
        session = MagicMock()
        session.get.side_effect = requests.Timeout("slow")
        session.post.side_effect = requests.Timeout("slow")
        fetcher = ProfileFetcher(github_token="tok", session=session)

        assert fetcher.fetch({"github": "a", "leetcode": "b"}) == {}

    def test_no_handles(self):
        session = MagicMock()
        assert ProfileFetcher(github_token="tok", session=session).fetch({"name": "x"}) == {}
        session.get.assert_not_called()


def test_last_days_window():
    days = [{"contributionCount": i} for i in range(5)]
    assert last_days(days, window=3) == [2, 3, 4]
