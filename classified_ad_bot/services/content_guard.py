"""Detection of links and references to outside platforms in ad text.

Users of the free tier try to slip channel and messenger links past the
filter by spelling them out (``t . me``, ``t[dot]me``), by swapping Latin
letters for Cyrillic look-alikes or by replacing letters with digits.
:class:`ContentGuard` first runs a plain regex over the raw text and only
when that misses normalizes the text and searches again.

The guard is a denylist of known services plus a generic ``label.tld``
shape over a fixed TLD list; it is not a general URL detector.
"""

import re
import unicodedata
from typing import Iterable, List, Optional, Sequence

from classified_ad_bot.config.logging import get_logger

logger = get_logger(__name__)


DEFAULT_DOMAIN_HINTS = (
    "t.me",
    "telegram.me",
    "telegram.dog",
    "telegra.ph",
    "vk.com",
    "vkontakte",
    "instagram",
    "instagr.am",
    "facebook",
    "fb.com",
    "youtube",
    "youtu.be",
    "tiktok",
    "twitter",
    "x.com",
    "discord.gg",
    "discord",
    "wa.me",
    "whatsapp",
    "google.com/sheets",
    "docs.google.com/spreadsheets",
)

DEFAULT_TLDS = (
    "ru", "com", "net", "org", "io", "app", "site", "dev", "pro",
    "me", "xyz", "shop", "store", "info", "gg",
)

_URL_LIKE_RE = re.compile(
    r"""\b(
        (https?://)?(
            (t(?:elegram)?\.?me|tg|tme|t\.me|telegra\.ph|telegram\.dog)|
            (wa\.me|whatsapp)|
            (vk\.com|vkontakte)|
            (instagram|instagr\.am)|
            (facebook|fb\.com)|
            (youtube|youtu\.be)|
            (tiktok)|
            (twitter|x\.com)|
            (discord\.gg|discord)|
            (google\.com/sheets|docs\.google\.com/spreadsheets|sheets\.google\.com)
        )
        \S*)
    """,
    re.IGNORECASE | re.VERBOSE,
)

_DOT_SPELLINGS = ("[dot]", "(dot)", "{dot}", " dot ")

_NOISE_CHARS = frozenset("[](){}<>\"'`")

# Closed table: Cyrillic letters that render like Latin ones, dot look-alikes, dashes
_LOOKALIKES = str.maketrans({
    "а": "a",
    "е": "e",
    "о": "o",
    "р": "p",
    "с": "c",
    "у": "y",
    "х": "x",
    "к": "k",
    "м": "m",
    "т": "t",
    "н": "h",
    "в": "b",
    "і": "i",
    "ё": "e",
    "й": "i",
    "·": ".",
    "•": ".",
    "。": ".",
    "､": ".",
    "–": "-",
    "—": "-",
})

_DIGITS = str.maketrans({"0": "o", "1": "l"})


def normalize(text: str) -> str:
    """Fold text so that spelled-out and disguised domains look like real ones."""
    lowered = unicodedata.normalize("NFKC", text.lower())

    for spelling in _DOT_SPELLINGS:
        lowered = lowered.replace(spelling, ".")

    kept = "".join(
        ch for ch in lowered
        if not ch.isspace() and ch not in _NOISE_CHARS
    )
    return kept.translate(_LOOKALIKES).translate(_DIGITS)


class ContentGuard:
    """Denylist matcher for references to outside platforms and links.

    ``domain_hints`` and ``tlds`` are product data and may be replaced per
    deployment, see :meth:`from_settings`.
    """

    def __init__(self, domain_hints: Optional[Iterable[str]] = None,
                 tlds: Optional[Iterable[str]] = None):
        hints = list(domain_hints) if domain_hints is not None else list(DEFAULT_DOMAIN_HINTS)
        self.domain_hints: List[str] = [normalize(h) for h in hints if h and h.strip()]
        self.tlds: List[str] = [t.strip().lower().lstrip(".") for t in (tlds or DEFAULT_TLDS) if t.strip()]
        self._generic_domain_re = re.compile(
            r"[a-z0-9\-]{2,}\.(" + "|".join(re.escape(t) for t in self.tlds) + r")\b"
        )

    @classmethod
    async def from_settings(cls, settings_service) -> "ContentGuard":
        """Build a guard with deployment-specific extra domains and TLD list."""
        extra = _split_csv(await settings_service.get("ContentGuard.ExtraDomains"))
        tlds = _split_csv(await settings_service.get("ContentGuard.Tlds"))
        return cls(
            domain_hints=list(DEFAULT_DOMAIN_HINTS) + extra,
            tlds=tlds or None,
        )

    def contains_forbidden_reference(self, text: Optional[str]) -> bool:
        if not text or not text.strip():
            return False

        if _URL_LIKE_RE.search(text):
            return True

        normalized = normalize(text)

        if "http://" in normalized or "https://" in normalized or "www." in normalized:
            return True

        for hint in self.domain_hints:
            if hint in normalized:
                logger.debug(f"Content guard matched hint {hint!r}")
                return True

        return bool(self._generic_domain_re.search(normalized))

    def any_forbidden(self, texts: Sequence[Optional[str]]) -> bool:
        """Check every field on its own so matches never span two fields."""
        return any(self.contains_forbidden_reference(t) for t in texts)


def _split_csv(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]
