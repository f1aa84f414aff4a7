"""
Day grouping and ordering of itinerary items.

Turns a flat list of items (any order) into display buckets: days
1..duration_days ascending, any out-of-range days after them, and the
unscheduled bucket last. Items may be pydantic models or plain mappings
(raw API payloads or Mongo documents); missing or malformed fields never
raise, they just sort last or land in the unscheduled bucket.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, Literal

UNSCHEDULED: Literal["unscheduled"] = "unscheduled"
END_OF_DAY = "24:00"

GroupKey = int | Literal["unscheduled"]

_TIME_RE = re.compile(r"^(\d{1,2}):(\d{2})")


@dataclass
class DayGroup:
    key: GroupKey
    items: list[Any] = field(default_factory=list)

    @property
    def is_unscheduled(self) -> bool:
        return self.key == UNSCHEDULED

    @property
    def label(self) -> str:
        return "Unscheduled" if self.is_unscheduled else f"Day {self.key}"


def _get(item: Any, *names: str) -> Any:
    """Read the first present attribute/key among `names`."""
    for name in names:
        if isinstance(item, Mapping):
            if name in item:
                return item[name]
        elif hasattr(item, name):
            return getattr(item, name)
    return None


def coerce_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        text = value.strip()
        if re.fullmatch(r"[-+]?\d+", text):
            return int(text)
    return None


def item_id(item: Any) -> str | None:
    value = _get(item, "id", "_id")
    return None if value is None else str(value)


def group_key(item: Any) -> GroupKey:
    """Day number when it is a positive integer, otherwise the unscheduled sentinel."""
    day = coerce_int(_get(item, "day_number", "dayNumber"))
    if day is None or day < 1:
        return UNSCHEDULED
    return day


def _time_key(value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        return END_OF_DAY
    match = _TIME_RE.match(value.strip())
    if not match:
        return value.strip()
    return f"{int(match.group(1)):02d}:{match.group(2)}"


def sort_key(item: Any) -> tuple:
    """position asc (missing last), then start_time asc (missing = 24:00)."""
    position = coerce_int(_get(item, "position"))
    start = _get(item, "start_time", "startTime")
    return (position is None, position if position is not None else 0, _time_key(start))


def order_items(items: Iterable[Any]) -> list[Any]:
    # sorted() is stable, so ties keep their input order
    return sorted(items, key=sort_key)


def group_itinerary(items: Iterable[Any], duration_days: int) -> list[DayGroup]:
    """
    Group and order items for display.

    Days 1..duration_days are always present (possibly empty). Items on a day
    past duration_days get their own trailing day group. The unscheduled
    group is always the last one, even when empty.
    """
    buckets: dict[GroupKey, list[Any]] = {}
    for item in items:
        buckets.setdefault(group_key(item), []).append(item)

    total_days = duration_days if isinstance(duration_days, int) and duration_days > 0 else 0
    extra_days = sorted(k for k in buckets if k != UNSCHEDULED and k > total_days)

    groups = [DayGroup(day, order_items(buckets.get(day, []))) for day in range(1, total_days + 1)]
    groups.extend(DayGroup(day, order_items(buckets[day])) for day in extra_days)
    groups.append(DayGroup(UNSCHEDULED, order_items(buckets.get(UNSCHEDULED, []))))
    return groups


def next_position(items: Iterable[Any], day_number: int | None) -> int:
    """Position for a new item appended to the end of the given day (or unscheduled)."""
    target = group_key({"day_number": day_number})
    positions = [
        p
        for p in (coerce_int(_get(item, "position")) for item in items if group_key(item) == target)
        if p is not None
    ]
    return max(positions) + 1 if positions else 0


def _with(item: Mapping, **changes) -> dict:
    updated = dict(item)
    updated.update(changes)
    return updated


def renormalize_positions(items: list[Mapping]) -> list[dict]:
    """Renumber every group 0..n-1 in display order; list order is preserved."""
    new_positions: dict[int, int] = {}
    buckets: dict[GroupKey, list[int]] = {}
    for index, item in enumerate(items):
        buckets.setdefault(group_key(item), []).append(index)
    for indexes in buckets.values():
        ordered = sorted(indexes, key=lambda i: sort_key(items[i]))
        for position, index in enumerate(ordered):
            new_positions[index] = position
    return [_with(item, position=new_positions[index]) for index, item in enumerate(items)]


def move_item(
    items: list[Mapping], target_id: str, target_day: int | None, target_position: int
) -> list[dict]:
    """
    Move one item to `target_position` inside `target_day` (None = unscheduled).

    The target group and, if different, the source group are renumbered
    0..n-1. Other groups are left alone. Raises KeyError for an unknown id.
    """
    indexes = [i for i, item in enumerate(items) if item_id(item) == str(target_id)]
    if not indexes:
        raise KeyError(target_id)
    moved_index = indexes[0]
    moved = items[moved_index]

    source_key = group_key(moved)
    target_key = group_key({"day_number": target_day})

    target_members = sorted(
        (i for i, item in enumerate(items) if i != moved_index and group_key(item) == target_key),
        key=lambda i: sort_key(items[i]),
    )
    slot = min(max(target_position, 0), len(target_members))
    target_members.insert(slot, moved_index)

    changes: dict[int, dict] = {}
    for position, index in enumerate(target_members):
        changes[index] = {"position": position}
    changes[moved_index]["day_number"] = None if target_key == UNSCHEDULED else target_key

    if source_key != target_key:
        source_members = sorted(
            (i for i, item in enumerate(items) if i != moved_index and group_key(item) == source_key),
            key=lambda i: sort_key(items[i]),
        )
        for position, index in enumerate(source_members):
            changes[index] = {"position": position}

    return [_with(item, **changes.get(index, {})) for index, item in enumerate(items)]
