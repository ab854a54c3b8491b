from __future__ import annotations

import logging
import math
import re
import time
from urllib.error import URLError
from urllib.request import Request, urlopen

logger = logging.getLogger(__name__)

# Fund pages on this host publish the latest net asset value.
NAV_SOURCE_HOST = "moneydj"

# Element ids that hold the NAV figure on known page layouts.
_NAV_ELEMENT_IDS = (
    "Ctl00_ContentPlaceHolder1_lblNav",
    "Ctl00_ContentPlaceHolder1_lblNet",
    "oMain_lblNav",
)

_NAV_LABEL = "淨值"
_NUMBER_RE = re.compile(r"[\d,]+\.\d+")
_TAG_RE = re.compile(r"<[^>]+>")
_CELL_RE = re.compile(r"<(td|th|span|div|p)\b[^>]*>(.*?)</\1>", re.IGNORECASE | re.DOTALL)

# A value found next to the label itself above this is likely a date or code.
_MAX_INLINE_NAV = 2000


def is_fund_nav_source(data_url: str) -> bool:
    return NAV_SOURCE_HOST in (data_url or "")


def _to_float(text: str) -> float | None:
    try:
        val = float(text.replace(",", "").strip())
    except ValueError:
        return None
    return val if math.isfinite(val) else None


def _fetch_page(url: str) -> str:
    # Cache busting
    sep = "&" if "?" in url else "?"
    target = f"{url}{sep}t={int(time.time() * 1000)}"
    req = Request(target, headers={"User-Agent": "holdings-ledger/0.1"})
    with urlopen(req, timeout=30) as resp:
        charset = resp.headers.get_content_charset() or "utf-8"
        return resp.read().decode(charset, errors="replace")


def extract_nav(html: str) -> float | None:
    """Pull the NAV figure out of a fund page.

    Tries the known element ids first, then any cell mentioning the NAV
    label, using a number inside that cell or else in the next cell.
    """
    for element_id in _NAV_ELEMENT_IDS:
        match = re.search(
            rf'id="{re.escape(element_id)}"[^>]*>(.*?)<',
            html,
            re.IGNORECASE | re.DOTALL,
        )
        if match:
            val = _to_float(_TAG_RE.sub("", match.group(1)))
            if val is not None:
                return val

    cells = [_TAG_RE.sub("", m.group(2)).strip() for m in _CELL_RE.finditer(html)]
    for i, text in enumerate(cells):
        if _NAV_LABEL not in text:
            continue
        inline = _NUMBER_RE.search(text)
        if inline:
            val = _to_float(inline.group(0))
            if val is not None and val < _MAX_INLINE_NAV:
                return val
        if i + 1 < len(cells):
            following = _NUMBER_RE.search(cells[i + 1])
            if following:
                val = _to_float(following.group(0))
                if val is not None:
                    return val
    return None


def fetch_fund_nav(url: str) -> float | None:
    if not url.startswith("http"):
        return None
    try:
        html = _fetch_page(url)
    except (URLError, OSError, ValueError) as e:
        logger.warning("Failed to fetch fund page %s: %s", url, e)
        return None
    nav = extract_nav(html)
    if nav is None:
        logger.warning("No NAV found on %s", url)
    return nav


def fetch_fund_nav_any(data_url: str) -> float | None:
    """Try each newline-separated URL in turn; first NAV found wins."""
    urls = [u.strip() for u in (data_url or "").splitlines() if u.strip()]
    for url in urls:
        nav = fetch_fund_nav(url)
        if nav:
            logger.info("NAV source ok: ...%s", url[-10:])
            return nav
    return None
