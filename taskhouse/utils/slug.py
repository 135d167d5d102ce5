import re
import unicodedata

SLUG_PATTERN = re.compile(r"^[a-z0-9-]{3,50}$")
SLUG_MAX_LENGTH = 50


def normalize_slug(value: str) -> str:
    if not value:
        return ""

    value = unicodedata.normalize("NFKD", value)
    value = value.encode("ascii", "ignore").decode("ascii")
    value = value.lower()
    value = re.sub(r"[^a-z0-9\s-]", "", value)
    value = re.sub(r"[\s-]+", "-", value).strip("-")

    return value[:SLUG_MAX_LENGTH].strip("-")


def is_valid_slug(value: str) -> bool:
    return bool(SLUG_PATTERN.match(value or ""))
