"""Classify a result URL into a coarse source type for downstream trust weighting."""

SOURCE_TYPES = ("official", "news", "review", "academic", "social", "blog")

_RULES: list[tuple[str, tuple[str, ...]]] = [
    ("official", (".gov", "official")),
    ("news", ("news", "bbc.com", "cnn.com", "nytimes.com", "reuters.com")),
    ("blog", ("blog", "wordpress.com", "blogspot.com", "medium.com")),
    ("review", ("tripadvisor.com", "yelp.com", "cruisecritic.com", "trustpilot.com")),
    ("social", ("twitter.com", "facebook.com", "instagram.com", "reddit.com")),
    ("academic", (".edu", "wikipedia.org", "arxiv.org")),
]


def classify_source_type(url: str) -> str:
    """
    Map a URL to one of SOURCE_TYPES by substring rules, first match wins.

    Unrecognized sources default to "blog".
    """
    lowered = (url or "").lower()
    for source_type, markers in _RULES:
        if any(marker in lowered for marker in markers):
            return source_type
    return "blog"
