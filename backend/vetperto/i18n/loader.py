"""
Message catalogue for notifications and e-mails.

messages.txt holds one `lang:key | "text"` entry per line. Lookups fall
back to the default language, then to the key itself, so a missing
translation never breaks a notification.
"""

import logging
import re
from functools import lru_cache
from pathlib import Path

from ..config import settings

logger = logging.getLogger(__name__)

MESSAGES_PATH = Path(__file__).resolve().parent / "messages.txt"

_ENTRY = re.compile(r'^(?P<lang>\w+):(?P<key>[^|]+)\|\s*"(?P<text>.*)"$')


@lru_cache(maxsize=None)
def load_messages(path: Path = MESSAGES_PATH) -> dict[str, dict[str, str]]:
    """Parse the catalogue into {lang: {key: text}}. Cached per path."""
    path = Path(path)
    catalogue: dict[str, dict[str, str]] = {}

    for number, line in enumerate(path.read_text(encoding="utf-8").splitlines(), start=1):
        line = line.strip()
        if not line or line.startswith("#"):
            continue

        entry = _ENTRY.match(line)
        if entry is None:
            logger.warning(f"{path.name}:{number}: malformed entry skipped")
            continue

        text = entry["text"].replace("\\n", "\n").strip()
        catalogue.setdefault(entry["lang"], {})[entry["key"].strip()] = text

    return catalogue


def normalize_lang(lang: str | None) -> str:
    """'pt-BR' / 'en_US' → 'pt' / 'en'; unknown or empty → default language."""
    if not lang:
        return settings.default_lang
    base = re.split(r"[-_]", lang.lower(), maxsplit=1)[0]
    return base if base in load_messages() else settings.default_lang


def t(key: str, lang: str | None = None, *args) -> str:
    """Translated text for key with %s placeholders filled from args."""
    catalogue = load_messages()
    text = (
        catalogue.get(normalize_lang(lang), {}).get(key)
        or catalogue.get(settings.default_lang, {}).get(key)
        or key
    )
    if not args:
        return text
    try:
        return text % args
    except (TypeError, ValueError):
        logger.warning(f"Placeholder mismatch for message {key!r}")
        return text
