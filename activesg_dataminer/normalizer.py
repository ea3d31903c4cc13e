"""
Turns fetched booking pages into GymRecords.

The page lists each slot as a pair of labels inside `.chkbox-grid` elements:

    07:00 AM
    25 Left

Times are shown in the portal's local zone (UTC+8) and stored in UTC.
"""

import datetime
import logging
import re
from typing import Dict, Iterable, List, Optional

from bs4 import BeautifulSoup
from pydantic import ValidationError

from .errors import ParseError
from .models import Gym, GymRecord, RawGymPayload, SlotLabel, SlotPage, Timeslot

PORTAL_TZ = datetime.timezone(datetime.timedelta(hours=8))

SLOT_RE = re.compile(r"([0-9]+)\s+Left", re.IGNORECASE)
TIME_RE = re.compile(r"\b([0-9]{1,2}):([0-9]{2})\s*([AP])M\b", re.IGNORECASE)


def parse_slot_count(label: str) -> int:
    match = SLOT_RE.search(label)
    if not match:
        raise ParseError(f"Cannot parse slot count from {label!r}")
    return int(match.group(1))


def parse_slot_time(label: str, day: datetime.date) -> datetime.datetime:
    match = TIME_RE.search(label)
    if not match:
        raise ParseError(f"Cannot parse slot time from {label!r}")

    hour, minute, meridiem = int(match.group(1)), int(match.group(2)), match.group(3).upper()
    if not 1 <= hour <= 12 or minute > 59:
        raise ParseError(f"Cannot parse slot time from {label!r}")

    # 12 AM is midnight, 12 PM is noon
    hour = hour % 12
    if meridiem == "P":
        hour += 12

    local = datetime.datetime.combine(day, datetime.time(hour, minute), tzinfo=PORTAL_TZ)
    return local.astimezone(datetime.timezone.utc)


def is_time_label(label: str) -> bool:
    return TIME_RE.search(label) is not None


def is_count_label(label: str) -> bool:
    return SLOT_RE.search(label) is not None


def extract_slot_page(payload: RawGymPayload) -> SlotPage:
    """Pull the (time, availability) label pairs out of a booking page, in page order."""
    soup = BeautifulSoup(payload.html, "html.parser")
    slots = []
    time_label = None

    for grid in soup.select(".chkbox-grid"):
        for label in grid.find_all("label"):
            text = label.get_text(" ", strip=True)
            if is_time_label(text):
                time_label = text
            if is_count_label(text):
                if time_label is None:
                    raise ParseError(f"{payload.gym.name} {payload.date}: slot count {text!r} has no time")
                slots.append(SlotLabel(time_label=time_label, avail_label=text))
                time_label = None

    if not slots:
        logging.warning(f"{payload.gym.name} {payload.date}: no timeslots on page")
    return SlotPage(gym=payload.gym, date=payload.date, slots=slots)


def page_timeslots(page: SlotPage) -> List[Timeslot]:
    try:
        return [
            Timeslot(
                time=parse_slot_time(slot.time_label, page.date),
                avail=parse_slot_count(slot.avail_label),
            )
            for slot in page.slots
        ]
    except ParseError as e:
        raise ParseError(f"{page.gym.name} {page.date}: {e}") from e


def normalize(payloads: Iterable[RawGymPayload], now: Optional[datetime.datetime] = None) -> GymRecord:
    """
    Build one GymRecord from all pages fetched for a single gym.

    `datetime` on the record is the time of normalization; pass `now` to fix it.
    """
    payloads = sorted(payloads, key=lambda p: p.date)
    if not payloads:
        raise ParseError("No pages to normalize")

    gym = payloads[0].gym
    if any(p.gym is not gym for p in payloads):
        raise ParseError(f"Pages for more than one gym passed for {gym.name}")

    timeslots = []
    for payload in payloads:
        timeslots.extend(page_timeslots(extract_slot_page(payload)))

    try:
        return GymRecord(
            gym=gym.name,
            datetime=now or datetime.datetime.now(datetime.timezone.utc),
            time=[t.time for t in timeslots],
            slots_avail=[t.avail for t in timeslots],
        )
    except ValidationError as e:
        raise ParseError(f"{gym.name}: {e.errors()[0]['msg']}") from e


def normalize_pages(payloads: Iterable[RawGymPayload], now: Optional[datetime.datetime] = None) -> List[GymRecord]:
    """Group pages by gym, keeping the order gyms were first fetched in."""
    now = now or datetime.datetime.now(datetime.timezone.utc)
    by_gym: Dict[Gym, List[RawGymPayload]] = {}
    for payload in payloads:
        by_gym.setdefault(payload.gym, []).append(payload)

    records = [normalize(pages, now) for pages in by_gym.values()]
    logging.info(f"Normalized {len(records)} gym record(s)")
    return records
