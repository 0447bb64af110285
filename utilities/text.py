"""
Text helpers shared by the API layer.
"""

import re
import unicodedata

_NON_SLUG_CHARS = re.compile(r"[^a-z0-9]+")


def slugify(text: str) -> str:
    """
    Build the URL-safe slug of a title.

    Accents are folded to ASCII, everything is lower-cased and every run of
    characters outside ``[a-z0-9]`` becomes a single dash.

    >>> slugify("Go in Action")
    'go-in-action'
    """
    folded = unicodedata.normalize("NFKD", text).encode("ascii", "ignore").decode("ascii")
    return _NON_SLUG_CHARS.sub("-", folded.lower()).strip("-")
