"""
Best-effort shadow intake extraction from caller utterances.

Each user transcript fragment is run through a set of small regex extractors.
A field is only ever filled once; later utterances cannot overwrite it. The
result is a log-only view of the conversation, never an authoritative record.
"""

import logging
import re
from typing import Callable, List, Optional, Tuple

from agent_bridge.config.constants import LOGGER_NAME
from agent_bridge.models.intake import ShadowIntakeRecord

logger = logging.getLogger(LOGGER_NAME)

INCIDENT_MIN_WORDS = 6

MONTHS = (
    "january", "february", "march", "april", "may", "june", "july",
    "august", "september", "october", "november", "december",
)
WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")

# Words that can never start or appear in a name or city candidate
NON_NAME_WORDS = frozenset(
    MONTHS
    + WEEKDAYS
    + (
        "i", "a", "an", "the", "my", "our", "his", "her", "their", "in", "at", "on",
        "calling", "not", "here", "was", "been", "with", "from", "about", "to",
        "for", "and", "client", "existing", "current", "looking", "trying",
        "hurt", "injured", "just", "so", "yes", "no", "hi", "hello", "thank",
        "thanks", "okay", "ok", "sure", "today", "yesterday",
    )
)

NEGATED_CLIENT_RE = re.compile(r"\bnot\s+(?:an?\s+)?(?:existing\s+|current\s+)?client\b", re.I)
EXISTING_CLIENT_RE = re.compile(
    r"\b(?:existing|already\s+(?:a\s+)?client|current\s+client|client\s+number)\b", re.I
)
NEW_MATTER_RE = re.compile(r"\b(?:accident|injur\w*|crash\w*|collision|wreck\w*|new\s+client)\b", re.I)

PHONE_RE = re.compile(r"(?<!\d)(?:\+?1[-.\s]?)?\(?(\d{3})\)?[-.\s]?(\d{3})[-.\s]?(\d{4})(?!\d)")
EMAIL_RE = re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b")

INTRO_RE = re.compile(r"\b(?:my name is|this is|i am|i'm)\s+(.+)", re.I)
WORD_RE = re.compile(r"[A-Za-z][A-Za-z'\-]*")

_MONTH_ALT = (
    r"jan(?:uary)?|feb(?:ruary)?|mar(?:ch)?|apr(?:il)?|may|june?|july?|aug(?:ust)?"
    r"|sep(?:t(?:ember)?)?|oct(?:ober)?|nov(?:ember)?|dec(?:ember)?"
)
MONTH_DAY_RE = re.compile(
    rf"\b(?:{_MONTH_ALT})\.?\s+\d{{1,2}}(?:st|nd|rd|th)?(?:,?\s+\d{{4}})?\b", re.I
)
SLASH_DATE_RE = re.compile(r"\b\d{1,2}/\d{1,2}(?:/\d{2,4})?\b")
RELATIVE_DATE_RE = re.compile(
    r"\b(?:today|yesterday|last\s+night|last\s+(?:" + "|".join(WEEKDAYS) + r"))\b", re.I
)

CITY_STATE_RE = re.compile(
    r"\b(?:[Ii]n|[Aa]t)\s+([A-Za-z]+(?:\s+[A-Za-z]+){0,2}),\s*([A-Za-z]{2})\b"
)
CAPITALIZED_CITY_RE = re.compile(r"\b(?:[Ii]n|[Aa]t)\s+([A-Z][a-zA-Z]+(?:\s+[A-Z][a-zA-Z]+){0,2})\b")

INCIDENT_RE = re.compile(
    r"\b(?:accident|crash\w*|collision|wreck\w*|injur\w*|hurt|fell|fall|slipped|"
    r"bit|bite|bitten|rear[- ]ended|hit|struck|broke\w*)\b",
    re.I,
)


def classify_client_type(text: str) -> Optional[str]:
    if NEGATED_CLIENT_RE.search(text):
        return "new"
    if EXISTING_CLIENT_RE.search(text):
        return "existing"
    if NEW_MATTER_RE.search(text):
        return "new"
    return None


def extract_phone(text: str) -> Optional[str]:
    """Find a North-American number and normalize it to AAA-BBB-CCCC."""
    match = PHONE_RE.search(text)
    if not match:
        return None
    return "-".join(match.groups())


def extract_email(text: str) -> Optional[str]:
    match = EMAIL_RE.search(text)
    return match.group(0) if match else None


def _is_capitalized(word: str) -> bool:
    return word[:1].isupper() and word.lower() not in NON_NAME_WORDS


def _name_from_introduction(text: str) -> Optional[str]:
    match = INTRO_RE.search(text)
    if not match:
        return None

    # Only the clause right after the introduction counts
    clause = re.split(r"[,.!?;]", match.group(1), maxsplit=1)[0]
    words = WORD_RE.findall(clause)
    if len(words) < 2:
        return None

    run: List[str] = []
    for word in words[:3]:
        if not _is_capitalized(word):
            break
        run.append(word)
    if len(run) >= 2:
        return " ".join(run)

    # Spoken transcripts often arrive lowercased
    if 2 <= len(words) <= 3 and not any(w.lower() in NON_NAME_WORDS for w in words):
        return " ".join(w.capitalize() for w in words)
    return None


def _name_from_capitalized_run(text: str) -> Optional[str]:
    run: List[str] = []
    previous = ""
    for word in WORD_RE.findall(text):
        if _is_capitalized(word) and (run or previous.lower() not in ("in", "at")):
            run.append(word)
            if len(run) == 3:
                break
        elif len(run) >= 2:
            break
        else:
            run = []
        previous = word
    if len(run) >= 2:
        return " ".join(run)
    return None


def extract_full_name(text: str) -> Optional[str]:
    """Prefer a self-introduction; fall back to the first capitalized run."""
    return _name_from_introduction(text) or _name_from_capitalized_run(text)


def extract_date(text: str) -> Optional[str]:
    for pattern in (MONTH_DAY_RE, SLASH_DATE_RE):
        match = pattern.search(text)
        if match:
            return match.group(0)
    match = RELATIVE_DATE_RE.search(text)
    if match:
        return " ".join(match.group(0).lower().split())
    return None


def _plausible_city(city: str) -> bool:
    words = city.split()
    return bool(words) and words[0].lower() not in NON_NAME_WORDS and not INCIDENT_RE.search(city)


def extract_location(text: str) -> Optional[str]:
    """
    Find an "in/at City[, ST]" location.

    A city followed by a two-letter state may be in any case; a bare city must
    be capitalized. Incident phrases such as "in an accident" are rejected.
    """
    for match in CITY_STATE_RE.finditer(text):
        city, state = match.group(1), match.group(2)
        if _plausible_city(city):
            return f"{' '.join(w.capitalize() for w in city.split())}, {state.upper()}"

    for match in CAPITALIZED_CITY_RE.finditer(text):
        city = match.group(1)
        if _plausible_city(city):
            return city
    return None


def extract_incident(text: str) -> Optional[str]:
    if INCIDENT_RE.search(text) or len(text.split()) >= INCIDENT_MIN_WORDS:
        return text
    return None


EXTRACTORS: Tuple[Tuple[str, Callable[[str], Optional[str]]], ...] = (
    ("client_type", classify_client_type),
    ("full_name", extract_full_name),
    ("phone", extract_phone),
    ("email", extract_email),
    ("incident", extract_incident),
    ("date", extract_date),
    ("location", extract_location),
)


def ingest_utterance(record: ShadowIntakeRecord, text: str) -> List[str]:
    """
    Update a shadow intake record from one user utterance.

    Exact repeats of any of the last few utterances are ignored, since the
    upstream often resends a fragment as both partial and final text.

    Args:
        record: The connection's intake record, mutated in place
        text: Raw user transcript text

    Returns:
        List of field names filled by this utterance
    """
    utterance = " ".join((text or "").split())
    if not utterance or record.seen_recently(utterance):
        return []

    record.remember(utterance)
    record.transcripts.append(utterance)

    updated = []
    for field, extractor in EXTRACTORS:
        if getattr(record, field) is not None:
            continue
        value = extractor(utterance)
        if value is not None:
            setattr(record, field, value)
            updated.append(field)

    if updated:
        logger.info(f"intake_update fields={updated} snapshot={record.snapshot()}")

    if not record.complete_logged and record.is_complete():
        record.complete_logged = True
        logger.info(f"intake_complete snapshot={record.snapshot()}")

    return updated
