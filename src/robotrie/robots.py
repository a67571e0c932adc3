import logging
import time
from dataclasses import dataclass, field
from typing import List, Optional, Tuple
from urllib.parse import urlparse, urljoin

import httpx

from .errors import RobotsFetchError
from .permissions import Permissions
from .trie import ALLOW, DISALLOW

log = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "robotrie/0.1"
DEFAULT_HEADERS = {
    "User-Agent": DEFAULT_USER_AGENT,
    "Accept": "text/plain,*/*;q=0.8",
}

Rule = Tuple[str, str]


@dataclass
class Group:
    agents: List[str] = field(default_factory=list)
    rules: List[Rule] = field(default_factory=list)


@dataclass
class RobotsFile:
    groups: List[Group] = field(default_factory=list)
    sitemaps: List[str] = field(default_factory=list)

    def rules_for(self, user_agent: str = "*") -> List[Rule]:
        """
        Rules of the group(s) that apply to `user_agent`.

        The product token (before any '/') is compared case-insensitively
        with each group's agent names; the longest matching name wins and
        every group carrying it is merged in file order. Groups for '*'
        are the fallback.
        """
        token = user_agent.split("/", 1)[0].strip().lower()
        best = ""
        if token and token != "*":
            for g in self.groups:
                for a in g.agents:
                    if a != "*" and a in token and len(a) > len(best):
                        best = a
        chosen = best or "*"

        rules: List[Rule] = []
        for g in self.groups:
            if chosen in g.agents:
                rules.extend(g.rules)
        return rules

    def permissions_for(self, user_agent: str = "*", default_permission: bool = True) -> Permissions:
        perms = Permissions(default_permission)
        for pattern, kind in self.rules_for(user_agent):
            perms.add_path(pattern, kind)
        return perms


def robots_url(base: str) -> str:
    p = urlparse(base)
    origin = f"{p.scheme}://{p.netloc}"
    return urljoin(origin, "/robots.txt")


def request_path(url: str) -> str:
    p = urlparse(url)
    path = p.path or "/"
    if p.query:
        path = f"{path}?{p.query}"
    return path


def parse_robots(text: str) -> RobotsFile:
    """
    Read the User-agent / Allow / Disallow / Sitemap lines of a robots.txt.
    Consecutive User-agent lines share one group; rules keep file order.
    """
    robots = RobotsFile()
    group: Optional[Group] = None
    in_agents = False

    for lineno, raw in enumerate(text.splitlines(), start=1):
        line = raw.split("#", 1)[0].strip()
        if not line or ":" not in line:
            continue
        key, value = line.split(":", 1)
        key = key.strip().lower()
        value = value.strip()

        if key == "user-agent":
            if not in_agents:
                group = Group()
                robots.groups.append(group)
                in_agents = True
            group.agents.append(value.lower())
        elif key in (ALLOW, DISALLOW):
            in_agents = False
            if group is None:
                log.debug("line %d: %s outside of any user-agent group", lineno, key)
                continue
            group.rules.append((value, key))
        elif key == "sitemap":
            if value:
                robots.sitemaps.append(value)
        else:
            in_agents = False
            log.debug("line %d: ignoring directive %r", lineno, key)
    return robots


def fetch_robots(
    base: str,
    client: Optional[httpx.Client] = None,
    tries: int = 3,
    backoff: float = 1.6,
    delay: float = 0.5,
) -> RobotsFile:
    """
    Download and parse robots.txt for the site of `base`.
    Retries on request errors (network, redirect loops) and on 429/5xx;
    any other non-200 status means "no rules".
    """
    url = robots_url(base)
    own_client = client is None
    if own_client:
        client = httpx.Client(headers=DEFAULT_HEADERS, follow_redirects=True, timeout=10.0)
    try:
        last_reason = "no attempts made"
        for attempt in range(1, tries + 1):
            try:
                r = client.get(url)
            except httpx.RequestError as exc:
                last_reason = str(exc) or exc.__class__.__name__
            else:
                if r.status_code == 200:
                    return parse_robots(r.text)
                if r.status_code != 429 and r.status_code < 500:
                    log.info("%s returned HTTP %d, treating as empty", url, r.status_code)
                    return RobotsFile()
                last_reason = f"HTTP {r.status_code}"
            log.warning("attempt %d/%d for %s failed: %s", attempt, tries, url, last_reason)
            if attempt < tries:
                time.sleep(delay)
                delay *= backoff
        raise RobotsFetchError(url, last_reason)
    finally:
        if own_client:
            client.close()


def is_allowed(url: str, robots: RobotsFile, user_agent: str = "*") -> bool:
    return robots.permissions_for(user_agent).is_allowed(request_path(url))
