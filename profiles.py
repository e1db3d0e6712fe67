"""
External profile fetch (GitHub and LeetCode).

Each source is best effort. A failing source is logged and contributes no
fields; the caller decides what an empty update means.
"""

from typing import Any, Dict, List, Optional

import requests

import settings
from logging_config import get_logger

logger = get_logger(__name__)

GITHUB_QUERY = """
query($login: String!) {
    user(login: $login) {
        avatarUrl
        login
        bio
        url
        contributionsCollection {
            contributionCalendar {
                weeks {
                    contributionDays {
                        contributionCount
                        date
                    }
                }
            }
        }
    }
}
"""


class ProfileFetcher:
    def __init__(
        self,
        github_token: Optional[str] = None,
        session: Optional[requests.Session] = None,
        timeout: float = settings.HTTP_TIMEOUT,
    ):
        self.github_token = github_token if github_token is not None else settings.GITHUB_TOKEN
        self.session = session or requests.Session()
        self.timeout = timeout

    def fetch_leetcode(self, handle: str) -> Optional[Dict[str, Any]]:
        url = f"{settings.LEETCODE_API_BASE.rstrip('/')}/{handle}/calendar"
        try:
            response = self.session.get(url, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.warning("leetcode_fetch_failed", handle=handle, error=str(e))
            return None
        values = data.values() if isinstance(data, dict) else data
        activity = [v for v in values if isinstance(v, int) and not isinstance(v, bool)]
        return {"activity": activity[-settings.ACTIVITY_WINDOW_DAYS:]}

    def fetch_github(self, handle: str) -> Optional[Dict[str, Any]]:
        if not self.github_token:
            return None
        try:
            response = self.session.post(
                settings.GITHUB_GRAPHQL_URL,
                json={"query": GITHUB_QUERY, "variables": {"login": handle}},
                headers={"Authorization": f"Bearer {self.github_token}"},
                timeout=self.timeout,
            )
            response.raise_for_status()
            github_user = (response.json().get("data") or {}).get("user")
        except (requests.RequestException, ValueError) as e:
            logger.warning("github_fetch_failed", handle=handle, error=str(e))
            return None
        if not github_user:
            logger.warning("github_user_missing", handle=handle)
            return None

        weeks = github_user["contributionsCollection"]["contributionCalendar"]["weeks"]
        days = [day for week in weeks for day in week["contributionDays"]]
        return {
            "profile_url": github_user.get("url"),
            "profile_picture": github_user.get("avatarUrl"),
            "readme": github_user.get("bio"),
            "activity": last_days(days),
        }

    def fetch(self, user: Dict[str, Any]) -> Dict[str, Any]:
        """Collect the profile fields to store for a user document.

        GitHub activity wins over LeetCode activity when both are available.
        """
        update: Dict[str, Any] = {}
        if user.get("leetcode"):
            update.update(self.fetch_leetcode(user["leetcode"]) or {})
        if user.get("github"):
            update.update(self.fetch_github(user["github"]) or {})
        return update


def last_days(days: List[Dict[str, Any]], window: int = settings.ACTIVITY_WINDOW_DAYS) -> List[int]:
    return [day["contributionCount"] for day in days[-window:]]
