"""
Gravatar URL for an email address.

Pure function of the email; size 200, rating "pg", default image "mm"
(mystery man). The URL is protocol-relative like the one the web client
has always received.
"""

import hashlib
from urllib.parse import urlencode

GRAVATAR_BASE_URL = "//www.gravatar.com/avatar/"
GRAVATAR_OPTIONS = {"s": "200", "r": "pg", "d": "mm"}


def gravatar_url(email: str) -> str:
    digest = hashlib.md5(email.strip().lower().encode("utf-8")).hexdigest()
    return f"{GRAVATAR_BASE_URL}{digest}?{urlencode(GRAVATAR_OPTIONS)}"
