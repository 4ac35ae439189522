"""Argument placeholders in URL templates.

Two placeholder forms are understood:

- `{1}`, `{2:city}`: explicit 1-based position, optional label
- `<city>`: named; takes the next free position in order of first appearance
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Optional, Sequence
from urllib.parse import quote

from .models import ArgumentSlot

PLACEHOLDER_RE = re.compile(r"\{(\d+)(?::([^{}]*))?\}|<([^<>\s]+)>")


@dataclass(frozen=True)
class TemplateResult:
    url: str
    missing: list[int] = field(default_factory=list)   # positions left empty
    extra: int = 0                                       # supplied values without a slot

    @property
    def complete(self) -> bool:
        return not self.missing and not self.extra


def _named_positions(template: str) -> dict[str, int]:
    claimed = {int(m.group(1)) for m in PLACEHOLDER_RE.finditer(template) if m.group(1)}
    positions: dict[str, int] = {}
    next_position = 1
    for m in PLACEHOLDER_RE.finditer(template):
        label = m.group(3)
        if not label or label in positions:
            continue
        while next_position in claimed:
            next_position += 1
        positions[label] = next_position
        claimed.add(next_position)
    return positions


def get_arguments(template: Optional[str]) -> list[ArgumentSlot]:
    """Return the argument slots of a URL template, ordered by position."""
    if not template:
        return []
    named = _named_positions(template)
    slots: dict[int, ArgumentSlot] = {}
    for m in PLACEHOLDER_RE.finditer(template):
        if m.group(1):
            position, label = int(m.group(1)), m.group(2) or None
        else:
            position, label = named[m.group(3)], m.group(3)
        if position < 1:
            continue
        # First labelled occurrence wins
        if position not in slots or (slots[position].label is None and label):
            slots[position] = ArgumentSlot(position=position, label=label)
    return [slots[p] for p in sorted(slots)]


def fill_template(template: str, values: Sequence[str]) -> TemplateResult:
    """Substitute percent-encoded values into the template's placeholders.

    Placeholders without a value become empty strings and are listed in
    `missing`; they never raise.
    """
    named = _named_positions(template)
    missing: set[int] = set()
    used: set[int] = set()

    def _substitute(m: re.Match) -> str:
        position = int(m.group(1)) if m.group(1) else named[m.group(3)]
        # Positions start at 1; "{0}" is not a slot and stays as written
        if position < 1:
            return m.group(0)
        if position > len(values):
            missing.add(position)
            return ""
        used.add(position)
        return quote(values[position - 1], safe="")

    url = PLACEHOLDER_RE.sub(_substitute, template)
    extra = len([p for p in range(1, len(values) + 1) if p not in used])
    return TemplateResult(url=url, missing=sorted(missing), extra=extra)
