"""
Synthetic Beacon Generator

Generates realistic tracker traffic for local development and load testing:
- Pageview beacons with plausible URLs, referrers and user agents
- Web vitals drawn from log-normal distributions around typical medians
- Occasional malformed web vital entries
- Custom events with small JSON payloads
"""

import math
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional

import numpy as np
from faker import Faker

from beacon_analytics.serving.statistics import rate_metric


# =============================================================================
# CONFIGURATION
# =============================================================================

PAGE_TEMPLATES = [
    ("/", 0.25),
    ("/blog/{slug}", 0.30),
    ("/docs/{slug}", 0.20),
    ("/pricing", 0.10),
    ("/about", 0.05),
    ("/contact", 0.05),
    ("/search?q={word}", 0.05),
]

REFERRERS = [
    (None, 0.45),
    ("https://www.google.com/", 0.25),
    ("https://news.ycombinator.com/", 0.08),
    ("https://twitter.com/", 0.07),
    ("https://www.bing.com/", 0.05),
    ("https://github.com/", 0.05),
    ("https://duckduckgo.com/", 0.05),
]

USER_AGENT_FAMILIES = [
    ("chrome", 0.60),
    ("safari", 0.20),
    ("firefox", 0.12),
    ("opera", 0.04),
    ("internet_explorer", 0.04),
]

# (median, sigma) of the log-normal distribution per metric
WEB_VITAL_DISTRIBUTIONS = {
    "LCP": (2200.0, 0.45),
    "FCP": (1400.0, 0.40),
    "CLS": (0.06, 0.90),
    "FID": (60.0, 0.70),
    "TTFB": (450.0, 0.50),
}

EVENT_NAMES = [
    ("button_click", 0.35),
    ("signup", 0.10),
    ("download", 0.15),
    ("outbound_link", 0.20),
    ("video_play", 0.10),
    ("form_submit", 0.10),
]


def _weights(choices) -> np.ndarray:
    weights = np.array([weight for _, weight in choices], dtype=float)
    return weights / weights.sum()


@dataclass
class SyntheticBeacon:
    """One generated request: endpoint kind, JSON body and client address"""
    kind: str
    payload: Dict[str, Any]
    source_addr: str


# =============================================================================
# GENERATOR
# =============================================================================

class BeaconGenerator:
    """
    Generate tracker beacons.

    Example:
        generator = BeaconGenerator(seed=42)
        for beacon in generator.traffic(n_sessions=100):
            ...
    """

    def __init__(
        self,
        seed: Optional[int] = None,
        site_url: str = "https://example.com",
        invalid_vital_rate: float = 0.05,
        event_rate: float = 0.3,
    ):
        self.site_url = site_url.rstrip("/")
        self.invalid_vital_rate = invalid_vital_rate
        self.event_rate = event_rate

        self.fake = Faker()
        if seed is not None:
            self.fake.seed_instance(seed)
        self.rng = np.random.default_rng(seed)

    def _pick(self, choices):
        index = self.rng.choice(len(choices), p=_weights(choices))
        return choices[index][0]

    def session_id(self) -> str:
        return self.fake.uuid4()

    def source_address(self) -> str:
        return self.fake.ipv4_public()

    def page_url(self) -> str:
        template = self._pick(PAGE_TEMPLATES)
        path = template.format(slug=self.fake.slug(), word=self.fake.word())
        return f"{self.site_url}{path}"

    def referrer(self) -> Optional[str]:
        return self._pick(REFERRERS)

    def user_agent(self) -> str:
        family = self._pick(USER_AGENT_FAMILIES)
        return getattr(self.fake, family)()

    def web_vitals(self) -> List[Dict[str, Any]]:
        """A subset of metrics, occasionally with a malformed entry mixed in"""
        vitals = []
        for name, (median, sigma) in WEB_VITAL_DISTRIBUTIONS.items():
            # FID needs an interaction; not every page load reports it
            if name == "FID" and self.rng.random() < 0.5:
                continue
            value = float(self.rng.lognormal(mean=math.log(median), sigma=sigma))
            value = round(value, 4) if name == "CLS" else round(value, 1)
            vitals.append({"name": name, "value": value, "rating": rate_metric(name, value).value})

        if self.rng.random() < self.invalid_vital_rate:
            vitals.append(self._invalid_vital())
        return vitals

    def _invalid_vital(self) -> Dict[str, Any]:
        kind = self.rng.integers(0, 3)
        if kind == 0:
            return {"name": "INVALID_METRIC", "value": 100}
        if kind == 1:
            return {"name": "LCP", "value": "fast"}
        return {"name": "CLS", "value": 0.1, "rating": "excellent"}

    def pageview(self, session_id: Optional[str] = None, page_url: Optional[str] = None) -> Dict[str, Any]:
        """Pageview body as posted to ``/api/track``"""
        return {
            "sessionId": session_id or self.session_id(),
            "pageUrl": page_url or self.page_url(),
            "referrer": self.referrer(),
            "userAgent": self.user_agent(),
            "timestamp": int(self.fake.unix_time() * 1000),
            "webVitals": self.web_vitals(),
        }

    def custom_event(self, session_id: Optional[str] = None, page_url: Optional[str] = None) -> Dict[str, Any]:
        """Custom event body as posted to ``/api/events``"""
        event_name = self._pick(EVENT_NAMES)
        payload: Dict[str, Any] = {
            "sessionId": session_id or self.session_id(),
            "pageUrl": page_url or self.page_url(),
            "eventName": event_name,
        }
        if self.rng.random() < 0.8:
            payload["eventData"] = {
                "label": self.fake.word(),
                "value": int(self.rng.integers(1, 100)),
            }
        return payload

    def traffic(self, n_sessions: int = 100) -> Iterator[SyntheticBeacon]:
        """Sessions of one to eight pageviews, some followed by a custom event"""
        for _ in range(n_sessions):
            session_id = self.session_id()
            source_addr = self.source_address()
            n_pages = int(self.rng.choice(
                [1, 2, 3, 4, 5, 6, 7, 8],
                p=[0.15, 0.20, 0.25, 0.15, 0.10, 0.08, 0.04, 0.03],
            ))

            for _ in range(n_pages):
                pageview = self.pageview(session_id=session_id)
                yield SyntheticBeacon("pageview", pageview, source_addr)

                if self.rng.random() < self.event_rate:
                    event = self.custom_event(session_id=session_id, page_url=pageview["pageUrl"])
                    yield SyntheticBeacon("event", event, source_addr)
