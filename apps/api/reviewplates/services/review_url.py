from urllib.parse import urlsplit

GOOGLE_REVIEW_HOST = "g.page"


def normalize_review_url(raw_url: str | None) -> str | None:
    """Return the canonical ``https://g.page/r/<place>/review`` form, or None.

    Only the official short review link is accepted. Query strings and
    fragments are dropped; a trailing slash after ``review`` is tolerated.
    """
    if not raw_url:
        return None

    value = raw_url.strip()
    if not value or any(char.isspace() for char in value):
        return None

    try:
        parsed = urlsplit(value)
        port = parsed.port
    except ValueError:
        return None

    if parsed.scheme.lower() not in {"http", "https"}:
        return None
    if (parsed.hostname or "").lower() != GOOGLE_REVIEW_HOST:
        return None
    if port is not None or parsed.username or parsed.password:
        return None

    path = parsed.path.rstrip("/")
    segments = path.split("/")
    # ["", "r", "<place>", "review"]
    if len(segments) != 4 or segments[1] != "r" or segments[3] != "review":
        return None
    if not segments[2]:
        return None

    return f"https://{GOOGLE_REVIEW_HOST}{path}"
