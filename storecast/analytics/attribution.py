"""
Traffic Attribution Module

Assigns every order to exactly one traffic source from its referrer URL
(falling back to the landing page URL).

Classification order:
1. Empty referrer -> direct
2. Parseable URL whose hostname belongs to a known platform -> platform
3. Unparseable string containing a platform keyword -> platform
4. Non-empty referrer outside the configured store domain -> referral
5. Otherwise -> direct
"""

from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Tuple
from urllib.parse import urlsplit

import structlog

from storecast.models.records import OrderRecord, TrafficSource

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class PlatformRule:
    """
    Known platform for attribution.

    ``brands`` match a hostname label followed only by a public suffix
    (``google`` matches ``www.google.co.uk``); ``domains`` match the exact
    host or any subdomain of it; ``keywords`` are substrings used when the
    referrer is not a parseable URL.
    """
    source: TrafficSource
    brands: Tuple[str, ...] = ()
    domains: Tuple[str, ...] = ()
    keywords: Tuple[str, ...] = ()


# Evaluated in order, first match wins
PLATFORM_RULES: Tuple[PlatformRule, ...] = (
    PlatformRule(
        TrafficSource.GOOGLE,
        brands=("google",),
        keywords=("google",),
    ),
    PlatformRule(
        TrafficSource.FACEBOOK,
        brands=("facebook", "fb"),
        keywords=("facebook", "fb."),
    ),
    PlatformRule(
        TrafficSource.INSTAGRAM,
        brands=("instagram",),
        keywords=("instagram",),
    ),
    PlatformRule(
        TrafficSource.TWITTER,
        domains=("twitter.com", "t.co", "x.com"),
        keywords=("twitter.com", "t.co", "x.com"),
    ),
    PlatformRule(
        TrafficSource.TIKTOK,
        brands=("tiktok",),
        keywords=("tiktok",),
    ),
    PlatformRule(
        TrafficSource.EMAIL,
        brands=("klaviyo", "mailchimp", "list-manage", "mailchi", "omnisend", "sendgrid"),
        keywords=("email", "klaviyo", "mailchimp"),
    ),
    PlatformRule(
        TrafficSource.PINTEREST,
        brands=("pinterest",),
        keywords=("pinterest",),
    ),
)


ANDROID_APP_SCHEME = "android-app"


def referrer_host(url: str) -> Optional[str]:
    """
    Lower-cased hostname of an absolute URL, or None when unparseable.

    Android app referrers carry a reversed package name
    (``android-app://com.google.android.gm``) and are read back as a
    hostname (``gm.android.google.com``).
    """
    if not url:
        return None
    try:
        parts = urlsplit(url.strip())
        host = parts.hostname
    except ValueError:
        return None
    if not parts.scheme or not parts.netloc or not host:
        return None
    host = host.lower().rstrip(".")
    if parts.scheme.lower() == ANDROID_APP_SCHEME:
        host = ".".join(reversed(host.split(".")))
    return host


def host_matches_domain(host: str, domain: str) -> bool:
    """Exact host or subdomain of ``domain``"""
    domain = domain.lower()
    return host == domain or host.endswith("." + domain)


def host_matches_brand(host: str, brand: str) -> bool:
    """
    True when ``brand`` is the registrable label of ``host``.

    The labels after the brand must look like a public suffix: one label
    (``.com``) or a short second-level label plus a country code
    (``.co.uk``, ``.com.au``).
    """
    labels = host.split(".")
    for i, label in enumerate(labels[:-1]):
        if label != brand:
            continue
        suffix = labels[i + 1:]
        if len(suffix) == 1 or (len(suffix) == 2 and len(suffix[0]) <= 3):
            return True
    return False


def _host_rule(rule: PlatformRule) -> Callable[[str], bool]:
    def predicate(host: str) -> bool:
        return any(host_matches_brand(host, b) for b in rule.brands) or any(
            host_matches_domain(host, d) for d in rule.domains
        )
    return predicate


def _keyword_rule(rule: PlatformRule) -> Callable[[str], bool]:
    def predicate(text: str) -> bool:
        return any(k in text for k in rule.keywords)
    return predicate


class TrafficAttributor:
    """
    Classifies orders into traffic sources.

    The store's own domain is passed in explicitly. Without one, external
    referrers cannot be told apart from the store, so unmatched referrers
    stay direct instead of being counted as referral traffic.

    Example:
        attributor = TrafficAttributor(store_domain="mystore.com")
        attributor.classify_url("https://m.facebook.com/ad")  # facebook
    """

    def __init__(
        self,
        store_domain: Optional[str] = None,
        rules: Sequence[PlatformRule] = PLATFORM_RULES,
    ):
        self.store_domain = (store_domain or "").strip().lower() or None
        self.host_rules: List[Tuple[Callable[[str], bool], TrafficSource]] = [
            (_host_rule(rule), rule.source) for rule in rules
        ]
        self.keyword_rules: List[Tuple[Callable[[str], bool], TrafficSource]] = [
            (_keyword_rule(rule), rule.source) for rule in rules
        ]

    def _is_own_domain(self, referrer: str, host: Optional[str]) -> bool:
        if host is not None:
            return host_matches_domain(host, self.store_domain)
        return self.store_domain in referrer

    def classify_url(self, url: Optional[str]) -> TrafficSource:
        """Source for a single referrer string"""
        referrer = (url or "").strip().lower()
        if not referrer:
            return TrafficSource.DIRECT

        host = referrer_host(referrer)
        if host is not None:
            for predicate, source in self.host_rules:
                if predicate(host):
                    return source
        else:
            for predicate, source in self.keyword_rules:
                if predicate(referrer):
                    return source

        if self.store_domain and not self._is_own_domain(referrer, host):
            return TrafficSource.REFERRAL
        return TrafficSource.DIRECT

    def classify(self, order: OrderRecord) -> TrafficSource:
        """Source for an order, using the landing page when no referrer is set"""
        return self.classify_url(order.referrer_url or order.landing_page_url)

    def count_sources(self, orders: Sequence[OrderRecord]) -> Dict[str, int]:
        """
        Order counts per source.

        Only sources with at least one order are present; keys are ordered
        by count descending, then by source name.
        """
        counts: Dict[str, int] = {}
        for order in orders:
            source = self.classify(order).value
            counts[source] = counts.get(source, 0) + 1

        logger.debug("Traffic attributed", orders=len(orders), sources=len(counts))
        return dict(sorted(counts.items(), key=lambda kv: (-kv[1], kv[0])))
