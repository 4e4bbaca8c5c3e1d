"""
Doctor weekly availability templates.

Times are zero padded ``HH:MM`` strings, so lexical comparison matches
chronological order and the booking checks can compare strings directly.
"""
from __future__ import annotations

import re
from datetime import date
from typing import Any, Dict, List

from django.db import transaction
from rest_framework.exceptions import ValidationError

from core.models import DoctorAvailability, User

WEEKDAYS = ['Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday', 'Saturday', 'Sunday']
TIME_RE = re.compile(r'^([01]\d|2[0-3]):[0-5]\d$')


def is_valid_time(value: Any) -> bool:
    return isinstance(value, str) and bool(TIME_RE.match(value))


def weekday_name(d: date) -> str:
    return WEEKDAYS[d.weekday()]


def full_week(slots: List[Dict[str, Any]] | None) -> List[Dict[str, Any]]:
    """Return the template with all seven days present in calendar order."""
    by_day = {s.get('day'): s.get('times') or [] for s in (slots or []) if isinstance(s, dict)}
    return [{'day': day, 'times': list(by_day.get(day, []))} for day in WEEKDAYS]


def slots_for(doctor: User) -> List[Dict[str, Any]]:
    avail = DoctorAvailability.objects.filter(doctor=doctor).first()
    return full_week(avail.slots if avail else [])


def validate_slots(slots: Any) -> List[Dict[str, Any]]:
    if not isinstance(slots, list):
        raise ValidationError({'slots': 'Slots must be a list'})
    cleaned: Dict[str, List[Dict[str, str]]] = {}
    for entry in slots:
        if not isinstance(entry, dict):
            raise ValidationError({'slots': 'Each entry must be an object with day and times'})
        day = entry.get('day')
        if day not in WEEKDAYS:
            raise ValidationError({'slots': f'Invalid day: {day}'})
        times = entry.get('times') or []
        if not isinstance(times, list):
            raise ValidationError({'slots': f'Times for {day} must be a list'})
        window_list = cleaned.setdefault(day, [])
        for t in times:
            start = t.get('start') if isinstance(t, dict) else None
            end = t.get('end') if isinstance(t, dict) else None
            if not (is_valid_time(start) and is_valid_time(end)):
                raise ValidationError({'slots': f'Times for {day} must use HH:MM'})
            if start >= end:
                raise ValidationError({'slots': f'Start must be before end on {day}'})
            window_list.append({'start': start, 'end': end})
    return [{'day': day, 'times': cleaned[day]} for day in WEEKDAYS if day in cleaned]


@transaction.atomic
def set_slots(doctor: User, slots: Any) -> List[Dict[str, Any]]:
    cleaned = validate_slots(slots)
    avail, _ = DoctorAvailability.objects.select_for_update().get_or_create(doctor=doctor)
    avail.slots = cleaned
    avail.save(update_fields=['slots', 'updated_at'])
    return full_week(cleaned)


def covers(slots: List[Dict[str, Any]] | None, on: date, start: str, end: str) -> bool:
    """True if some window on ``on``'s weekday contains ``[start, end]``."""
    day = weekday_name(on)
    for entry in slots or []:
        if entry.get('day') != day:
            continue
        for t in entry.get('times') or []:
            if t.get('start', '') <= start and end <= t.get('end', ''):
                return True
    return False
