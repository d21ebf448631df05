"""Event time extraction for German time expressions."""

import datetime as dt
import logging
import re
from typing import List, Optional, Tuple

from ..models.entry import EvidenceSpan, ParsedTime, TimeKind
from .normalize import NUMBER_PATTERN, Residual, to_number
from .review import ReviewPolicy

logger = logging.getLogger(__name__)

CLOCK_CONFIDENCE = 0.95
DAY_PART_CONFIDENCE = 0.80
BARE_DAY_CONFIDENCE = 0.70
RELATIVE_CONFIDENCE = 0.90
EXPLICIT_NOW_CONFIDENCE = 0.90
DEFAULT_NOW_CONFIDENCE = 0.75

DAYS_AGO = {'heute': 0, 'gestern': 1, 'vorgestern': 2}

DAY_PART_HOURS = {
    'früh': 7, 'frueh': 7, 'morgen': 7, 'vormittag': 10, 'mittag': 12,
    'nachmittag': 15, 'abend': 20, 'nacht': 23,
}
AFTERNOON_PARTS = {'nachmittag', 'abend', 'nacht'}

_DATE_RE = re.compile(
    r"\b(?:am\s+)?(?P<day>\d{1,2})\.\s?(?P<month>\d{1,2})\.(?:\s?(?P<year>\d{4}|\d{2})\b)?",
    re.IGNORECASE,
)
_DAY_RE = re.compile(
    r"\b(?P<day>vorgestern|gestern|heute)"
    r"(?:\s+(?P<part>früh|frueh|morgen|vormittag|mittag|nachmittag|abend|nacht)\b)?\b",
    re.IGNORECASE,
)
_LAST_NIGHT_RE = re.compile(r"\bletzte\s+nacht\b", re.IGNORECASE)

_CLOCK_PATTERNS: List[Tuple[str, "re.Pattern"]] = [
    ("digital", re.compile(
        r"\b(?:(?:um|gegen|ab)\s+)?(?P<h>\d{1,2})[:.](?P<m>\d{2})(?:\s*uhr)?\b", re.IGNORECASE)),
    ("uhr", re.compile(
        rf"\b(?:(?:um|gegen|ab)\s+)?(?P<h>{NUMBER_PATTERN})\s*uhr(?:\s+(?P<m>\d{{1,2}})\b)?",
        re.IGNORECASE)),
    ("halb", re.compile(rf"\b(?:(?:um|gegen)\s+)?halb\s+(?P<h>{NUMBER_PATTERN})\b", re.IGNORECASE)),
    ("viertel_nach", re.compile(
        rf"\b(?:(?:um|gegen)\s+)?viertel\s+nach\s+(?P<h>{NUMBER_PATTERN})\b", re.IGNORECASE)),
    ("viertel_vor", re.compile(
        rf"\b(?:(?:um|gegen)\s+)?viertel\s+vor\s+(?P<h>{NUMBER_PATTERN})\b", re.IGNORECASE)),
    ("bare_um", re.compile(
        r"\b(?:um|gegen)\s+(?P<h>\d{1,2})\b(?!\s*(?:von|/|mg|ml|minuten?|min|stunden?|std|tabletten?))",
        re.IGNORECASE)),
]

_RELATIVE_NUMBER_RE = re.compile(
    rf"\b(?:vor|seit)\s+(?:(?:ca\.?|etwa|ungefähr|circa)\s+)?(?P<n>{NUMBER_PATTERN})\s*"
    r"(?P<unit>minuten|minute|min|stunden|stunde|std|h)\b",
    re.IGNORECASE,
)
_RELATIVE_FRACTION_RE = re.compile(
    r"\b(?:vor|seit)\s+(?:einer|einem|ner)\s+"
    r"(?:(?P<half>halben)\s+stunde|(?P<three>dreiviertel)\s*stunde|(?P<quarter>viertel)\s*stunde)\b",
    re.IGNORECASE,
)
_RELATIVE_ONE_AND_HALF_RE = re.compile(
    r"\b(?:(?:vor|seit)\s+)?(?:anderthalb|eineinhalb)\s+stunden?\b", re.IGNORECASE)

_NOW_RE = re.compile(r"\b(?:jetzt|gerade|soeben|eben|momentan|aktuell|sofort)\b", re.IGNORECASE)


def relative_display(minutes: int) -> str:
    """German rendering of a relative time."""
    special = {
        15: 'vor einer Viertelstunde',
        30: 'vor einer halben Stunde',
        45: 'vor einer Dreiviertelstunde',
        60: 'vor einer Stunde',
        90: 'vor anderthalb Stunden',
    }
    if minutes in special:
        return special[minutes]
    if minutes < 60:
        return f"vor {minutes} Minute" + ("" if minutes == 1 else "n")
    hours, rest = divmod(minutes, 60)
    if rest == 0:
        return f"vor {hours} Stunden"
    return f"vor {hours} Std. {rest} Min."


def _parse_clock(kind: str, match: "re.Match") -> Optional[Tuple[int, int]]:
    hour = to_number(match.group("h"))
    if hour is None:
        return None
    minute = 0
    if kind in ("digital", "uhr") and match.group("m"):
        minute = int(match.group("m"))
    elif kind == "halb":
        hour, minute = (hour - 1) % 24, 30
    elif kind == "viertel_nach":
        minute = 15
    elif kind == "viertel_vor":
        hour, minute = (hour - 1) % 24, 45
    if not (0 <= hour <= 24 and 0 <= minute <= 59):
        return None
    return hour % 24, minute


def _find_clock(residual: Residual) -> Optional[Tuple[int, int, "re.Match"]]:
    for kind, pattern in _CLOCK_PATTERNS:
        for match in residual.finditer(pattern):
            clock = _parse_clock(kind, match)
            if clock is not None:
                return clock[0], clock[1], match
    return None


def _find_date(residual: Residual, reference: dt.datetime) -> Optional[Tuple[dt.date, "re.Match"]]:
    for match in residual.finditer(_DATE_RE):
        year = match.group("year")
        if year is None:
            year_value = reference.year
        elif len(year) == 2:
            year_value = 2000 + int(year)
        else:
            year_value = int(year)
        try:
            return dt.date(year_value, int(match.group("month")), int(match.group("day"))), match
        except ValueError:
            continue
    return None


def _absolute(residual: Residual, reference: dt.datetime, policy: ReviewPolicy) -> Optional[ParsedTime]:
    evidence: List[EvidenceSpan] = []
    day: Optional[dt.date] = None
    day_label: Optional[str] = None
    part: Optional[str] = None
    default_hour: Optional[int] = None

    def take(match: "re.Match") -> None:
        evidence.append(residual.evidence(match.start(), match.end()))
        residual.consume(match.start(), match.end())

    date_hit = _find_date(residual, reference)
    day_match = residual.search(_DAY_RE)
    night_match = residual.search(_LAST_NIGHT_RE)
    if date_hit:
        day, match = date_hit
        day_label = f"am {day.strftime('%d.%m.%Y')}"
        take(match)
    elif day_match:
        day_word = day_match.group("day").lower()
        day = reference.date() - dt.timedelta(days=DAYS_AGO[day_word])
        day_label = day_word
        if day_match.group("part"):
            part = day_match.group("part").lower()
            default_hour = DAY_PART_HOURS[part]
            label = "früh" if part in ("früh", "frueh") else part.capitalize()
            day_label = f"{day_word} {label}"
        take(day_match)
    elif night_match:
        day, part, default_hour, day_label = reference.date(), "nacht", 3, "letzte Nacht"
        take(night_match)

    clock_hit = _find_clock(residual)
    if clock_hit is None and day is None:
        return None

    clock_text: Optional[str] = None
    if clock_hit:
        hour, minute, match = clock_hit
        if part in AFTERNOON_PARTS and hour < 12 and not (part == "nacht" and hour < 6):
            hour += 12
        clock_text = f"{hour:02d}:{minute:02d}"
        take(match)
        confidence = CLOCK_CONFIDENCE
        if day is None:
            day = reference.date()
            moment = dt.datetime.combine(day, dt.time(hour, minute), tzinfo=reference.tzinfo)
            if moment > reference:
                day = day - dt.timedelta(days=1)
    elif default_hour is not None:
        clock_text = f"{default_hour:02d}:00"
        confidence = DAY_PART_CONFIDENCE
    else:
        confidence = BARE_DAY_CONFIDENCE

    if day_label and clock_hit:
        display = f"{day_label} um {clock_text} Uhr"
    elif day_label:
        display = day_label
    else:
        display = f"um {clock_text} Uhr"

    return ParsedTime(
        kind=TimeKind.ABSOLUTE,
        date=day.isoformat(),
        time=clock_text,
        display_text=display,
        confidence=confidence,
        evidence=sorted(evidence, key=lambda span: span.start),
        needs_review=policy.needs_review(confidence),
    )


def _relative(residual: Residual, policy: ReviewPolicy) -> Optional[ParsedTime]:
    minutes: Optional[int] = None
    match = residual.search(_RELATIVE_FRACTION_RE)
    if match:
        if match.group("half"):
            minutes = 30
        elif match.group("three"):
            minutes = 45
        else:
            minutes = 15
    if minutes is None:
        match = residual.search(_RELATIVE_ONE_AND_HALF_RE)
        if match:
            minutes = 90
    if minutes is None:
        match = residual.search(_RELATIVE_NUMBER_RE)
        if match:
            amount = to_number(match.group("n"))
            if amount is not None:
                unit = match.group("unit").lower()
                minutes = amount if unit.startswith("min") else amount * 60
    if minutes is None:
        return None

    evidence = [residual.evidence(match.start(), match.end())]
    residual.consume(match.start(), match.end())
    return ParsedTime(
        kind=TimeKind.RELATIVE,
        relative_minutes=minutes,
        display_text=relative_display(minutes),
        confidence=RELATIVE_CONFIDENCE,
        evidence=evidence,
        needs_review=policy.needs_review(RELATIVE_CONFIDENCE),
    )


def _bare_day(residual: Residual, reference: dt.datetime) -> Optional["re.Match"]:
    """A lone day word ("heute") with no date, clock time or day part."""
    match = residual.search(_DAY_RE)
    if match is None or match.group("part"):
        return None
    if _find_date(residual, reference) or _find_clock(residual) or residual.search(_LAST_NIGHT_RE):
        return None
    return match


def _relative_on_day(residual: Residual, reference: dt.datetime, day_match: "re.Match",
                     policy: ReviewPolicy) -> Optional[ParsedTime]:
    """Relative time refining a lone day word, flagged when the two disagree."""
    relative = _relative(residual, policy)
    if relative is None:
        return None

    spoken_day = reference.date() - dt.timedelta(days=DAYS_AGO[day_match.group("day").lower()])
    agrees = relative.resolve(reference).date() == spoken_day
    if not agrees:
        logger.info(f"'{relative.display_text}' contradicts '{day_match.group(0)}', flagging time for review")

    evidence = relative.evidence + [residual.evidence(day_match.start(), day_match.end())]
    residual.consume(day_match.start(), day_match.end())
    return ParsedTime(
        kind=TimeKind.RELATIVE,
        relative_minutes=relative.relative_minutes,
        display_text=relative.display_text,
        confidence=relative.confidence,
        evidence=sorted(evidence, key=lambda span: span.start),
        needs_review=relative.needs_review or not agrees,
    )


def default_time(policy: ReviewPolicy) -> ParsedTime:
    return ParsedTime(
        kind=TimeKind.NOW,
        is_now=True,
        display_text="jetzt",
        confidence=DEFAULT_NOW_CONFIDENCE,
        needs_review=policy.needs_review(DEFAULT_NOW_CONFIDENCE),
    )


def extract_time(residual: Residual, reference: dt.datetime, policy: ReviewPolicy) -> ParsedTime:
    """Find when the event happened and consume the matched expression.

    Absolute expressions are tried first, then relative ones, then an explicit
    "jetzt". A lone day word only counts when no relative expression follows
    it ("heute vor 20 Minuten" is relative). Without any of them the event is
    assumed to be happening now.
    """
    day_match = _bare_day(residual, reference)
    parsed = _relative_on_day(residual, reference, day_match, policy) if day_match else None
    if parsed is None:
        parsed = _absolute(residual, reference, policy) or _relative(residual, policy)
    if parsed is not None:
        return parsed

    match = residual.search(_NOW_RE)
    if match:
        evidence = [residual.evidence(match.start(), match.end())]
        residual.consume(match.start(), match.end())
        return ParsedTime(
            kind=TimeKind.NOW,
            is_now=True,
            display_text="jetzt",
            confidence=EXPLICIT_NOW_CONFIDENCE,
            evidence=evidence,
            needs_review=policy.needs_review(EXPLICIT_NOW_CONFIDENCE),
        )

    logger.debug("No time expression found, assuming now")
    return default_time(policy)
