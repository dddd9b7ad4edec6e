"""
Request parameter normalisation and target domain policy.
"""

import re
import logging
from typing import List, Optional
from urllib.parse import urlparse

from .config import (
    DEFAULT_HEIGHT,
    DEFAULT_WIDTH,
    MAX_URL_LENGTH,
    MIN_DIMENSION,
    TRACKING_PARAM,
)
from .errors import InvalidTargetError

logger = logging.getLogger(__name__)

_CONTROL_CHARS = re.compile("[\u0000-\u001f\u007f-\u009f]")
_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def parse_dimension(raw: Optional[str], default: int, maximum: int) -> int:
    """
    Turn a query value into a usable viewport dimension.

    Leading digits are used ("800px" is 800). Missing, unparsable or
    too-small values fall back to ``default``; large ones are clamped.
    """
    value = None
    if raw is not None:
        match = _LEADING_INT.match(str(raw))
        if match:
            value = int(match.group(1))

    if value is None or value < MIN_DIMENSION:
        value = default
    if value > maximum:
        value = maximum
    return value


def parse_width(raw: Optional[str], maximum: int) -> int:
    return parse_dimension(raw, DEFAULT_WIDTH, maximum)


def parse_height(raw: Optional[str], maximum: int) -> int:
    return parse_dimension(raw, DEFAULT_HEIGHT, maximum)


def normalize_target_url(url: str) -> str:
    """
    Build the URL that is actually rendered and cached.

    Adds ``https://`` when no http(s) scheme is given and appends the
    capture marker parameter.

    Raises:
        InvalidTargetError: control characters or an over-long URL.
    """
    target = url
    if not target.startswith("http://") and not target.startswith("https://"):
        target = f"https://{target}"

    target += f"&{TRACKING_PARAM}" if "?" in target else f"?{TRACKING_PARAM}"

    if _CONTROL_CHARS.search(target) or len(target) > MAX_URL_LENGTH:
        raise InvalidTargetError("Invalid URL")
    return target


def is_domain_allowed(url: str, allowed_domains: List[str]) -> bool:
    """
    Check ``url`` against the allowlist.

    An empty allowlist allows everything. Otherwise the host must equal an
    allowed domain or be a subdomain of one.
    """
    if not allowed_domains:
        return True

    try:
        host = urlparse(url).hostname
    except ValueError as e:
        logger.error(f"[OgImage] Error parsing URL: {e}")
        return False
    if not host:
        return False

    host = host.lower()
    return any(
        host == domain or host.endswith("." + domain)
        for domain in allowed_domains
    )
