"""Cache keys and TTLs for devotional content.

Keys are relative to the cache prefix; ``CacheService`` adds the namespace.
"""

from __future__ import annotations

from noorsync.utils.datetime_utils import MS_PER_HOUR, MS_PER_MINUTE, days_to_ms

# Static content changes rarely
TTL_QURAN_MS = days_to_ms(90)
TTL_HADITH_MS = days_to_ms(90)
TTL_NAMES_MS = days_to_ms(90)

# Rotating content
TTL_DAILY_MS = MS_PER_HOUR
TTL_LATEST_MS = 30 * MS_PER_MINUTE


def verse_key(surah: int, verse: int) -> str:
    return f"verse_{surah}_{verse}"


def surah_key(surah: int) -> str:
    return f"surah_info_{surah}"


def ai_insight_key(content_id: str | int, content_type: str) -> str:
    """Key for a generated insight on one piece of content, e.g. ``ai_insight_verse_2:255``."""
    return f"ai_insight_{content_type}_{content_id}"


def hadith_mood_key(hadith_id: str | int) -> str:
    return f"ai_mood_hadith_{hadith_id}"


def names_of_allah_key() -> str:
    return "reminder_names_of_allah"


def daily_reminder_key() -> str:
    return "reminder_daily"
