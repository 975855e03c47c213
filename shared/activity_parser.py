# Copyright 2025 Google LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# ==============================================================================

"""Turns free text like "Dinner at Le Marais tomorrow at 8pm" into activity fields."""

import re
from datetime import date, timedelta
from typing import Optional, Tuple

from shared.types import ParsedActivity

FLEXIBLE_TIME = "12:00"

WEEKDAYS = [
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
]

DAY_PARTS = {
    "morning": "09:00",
    "afternoon": "14:00",
    "evening": "19:00",
    "night": "21:00",
}

CLOCK_PATTERN = re.compile(
    r"\b(?:at\s+)?(\d{1,2})(?::(\d{2}))?\s*(am|pm)\b"
    r"|\b(?:at\s+)?(\d{1,2}):(\d{2})\b"
    r"|\bat\s+(\d{1,2})\b(?!\s*(?:st|nd|rd|th)\b)(?=\s*$|\s+(?:on|in|at|to|today|tomorrow)\b|[,.])",
    re.IGNORECASE,
)
DAY_PART_PATTERN = re.compile(
    r"\b(?:in\s+the\s+|this\s+|at\s+)?(morning|afternoon|evening|night)\b",
    re.IGNORECASE,
)
ISO_DATE_PATTERN = re.compile(r"\b(?:on\s+)?(\d{4}-\d{2}-\d{2})\b", re.IGNORECASE)
RELATIVE_DATE_PATTERN = re.compile(
    r"\b(?:on\s+|next\s+|this\s+)?(today|tomorrow|" + "|".join(WEEKDAYS) + r")\b",
    re.IGNORECASE,
)
LOCATION_PATTERN = re.compile(r"\b(?:at|in|to)\s+(.+)$", re.IGNORECASE)


def _to_clock(hour: int, minute: int, meridiem: Optional[str]) -> Optional[str]:
    if meridiem:
        meridiem = meridiem.lower()
        if hour < 1 or hour > 12:
            return None
        if meridiem == "pm" and hour != 12:
            hour += 12
        elif meridiem == "am" and hour == 12:
            hour = 0
    if hour > 23 or minute > 59:
        return None
    return f"{hour:02d}:{minute:02d}"


def extract_time(text: str) -> Tuple[Optional[str], str]:
    """Returns (HH:MM or None, text with the time phrase removed)."""
    match = CLOCK_PATTERN.search(text)
    if match:
        if match.group(1):
            clock = _to_clock(
                int(match.group(1)), int(match.group(2) or 0), match.group(3)
            )
        elif match.group(4):
            clock = _to_clock(int(match.group(4)), int(match.group(5)), None)
        else:
            clock = _to_clock(int(match.group(6)), 0, None)
        if clock:
            return clock, _remove_span(text, match.span())

    match = DAY_PART_PATTERN.search(text)
    if match:
        return DAY_PARTS[match.group(1).lower()], _remove_span(text, match.span())
    return None, text


def extract_date(text: str, reference: date) -> Tuple[Optional[date], str]:
    """Returns (date or None, text with the date phrase removed)."""
    match = ISO_DATE_PATTERN.search(text)
    if match:
        try:
            return date.fromisoformat(match.group(1)), _remove_span(
                text, match.span()
            )
        except ValueError:
            pass

    match = RELATIVE_DATE_PATTERN.search(text)
    if not match:
        return None, text
    word = match.group(1).lower()
    if word == "today":
        parsed = reference
    elif word == "tomorrow":
        parsed = reference + timedelta(days=1)
    else:
        offset = (WEEKDAYS.index(word) - reference.weekday()) % 7
        parsed = reference + timedelta(days=offset)
    return parsed, _remove_span(text, match.span())


def _remove_span(text: str, span: Tuple[int, int]) -> str:
    start, end = span
    return _squash(text[:start] + " " + text[end:])


def _squash(text: str) -> str:
    text = re.sub(r"\s+", " ", text)
    return text.strip(" ,.;-")


def _capitalize(text: str) -> str:
    return text[:1].upper() + text[1:] if text else text


def parse_activity_text(
    text: str, reference: Optional[date] = None
) -> ParsedActivity:
    """
    Parses a natural-language activity description.

    Args:
        text: Free text such as "Lunch at Katz's Deli tomorrow at 1pm".
        reference: The date "today" refers to. Defaults to the current date.

    Returns:
        ParsedActivity with title, location, HH:MM time and ISO date.
    """
    reference = reference or date.today()
    remaining = _squash(text or "")
    if not remaining:
        raise ValueError("Activity text is empty")

    clock, remaining = extract_time(remaining)
    parsed_date, remaining = extract_date(remaining, reference)

    location = ""
    title = remaining
    match = LOCATION_PATTERN.search(remaining)
    if match:
        location = _squash(match.group(1))
        title = _squash(remaining[: match.start()])

    if not title:
        title = _squash(text)

    return ParsedActivity(
        title=_capitalize(title),
        location_name=location,
        time=clock or FLEXIBLE_TIME,
        date=(parsed_date or reference).isoformat(),
        time_is_flexible=clock is None,
    )
