import requests

from .config import BUILDKITE_API_URL, REQUEST_TIMEOUT_SECONDS
from .engine import DemandSnapshot

BUILD_STATES = ("running", "scheduled")
PAGE_SIZE = 100


class DemandSourceError(Exception):
    pass


class BuildkiteMonitor:
    def __init__(self, api_token, organization=None, api_url=BUILDKITE_API_URL,
                 timeout=REQUEST_TIMEOUT_SECONDS, session=None):
        self.organization = organization
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({
            "Authorization": f"Bearer {api_token}",
            "Accept": "application/json",
        })

    @property
    def builds_url(self):
        if self.organization:
            return f"{self.api_url}/organizations/{self.organization}/builds"
        return f"{self.api_url}/builds"

    def list_builds(self):
        url = self.builds_url
        params = [("state[]", s) for s in BUILD_STATES] + [("per_page", PAGE_SIZE)]
        builds = []

        while url:
            try:
                resp = self.session.get(url, params=params, timeout=self.timeout)
                resp.raise_for_status()
                page = resp.json()
            except requests.exceptions.RequestException as e:
                raise DemandSourceError(f"Buildkite request failed: {e}") from e
            except ValueError as e:
                raise DemandSourceError(f"Buildkite returned invalid JSON: {e}") from e

            if not isinstance(page, list):
                raise DemandSourceError("Buildkite returned an unexpected payload")
            builds.extend(page)

            # The next link already carries the query string
            url = resp.links.get("next", {}).get("url")
            params = None

        return builds

    def get_demand(self):
        return count_builds(self.list_builds())


def count_builds(builds):
    running, scheduled = 0, 0
    for build in builds:
        if not isinstance(build, dict):
            raise DemandSourceError(f"Unexpected build entry: {build!r}")
        state = build.get("state")
        if state == "running":
            running += 1
        elif state == "scheduled":
            scheduled += 1
        else:
            raise DemandSourceError(f"Unexpected build state: {state!r}")
    return DemandSnapshot(running=running, scheduled=scheduled)
