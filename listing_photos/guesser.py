"""Static photo URL guesses used when no browser is available."""

from __future__ import annotations

from typing import List

from .config import IMAGE_CDN_HOST

# Ordered by likelihood; only the size suffix differs.
DIRECT_URL_TEMPLATES = (
    "https://" + IMAGE_CDN_HOST + "/fp/{zpid}_cc_ft_768_576_sq.jpg",
    "https://" + IMAGE_CDN_HOST + "/fp/{zpid}_p_f.jpg",
)


def guess_image_urls(zpid: str) -> List[str]:
    """Build candidate CDN URLs for a listing without visiting its page.

    The CDN usually keys photos by an opaque hash rather than the zpid, so
    these guesses miss far more often than the browser path.
    """
    return [template.format(zpid=zpid) for template in DIRECT_URL_TEMPLATES]
