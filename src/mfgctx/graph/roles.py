"""Semantic roles and the ranked rules that assign them to entities.

Every entity fetched from a backend may fill at most one of six context
slots. The role is inferred from four independent signals, each producing
``(role, priority)`` candidates:

1. a pattern substring in the entity's ``type_id`` (declared priority),
2. in its ``id`` (declared priority + 10),
3. in its ``display_name`` (declared priority + 20),
4. role-indicative attribute keys (priority 0, since they reflect schema).

The single lowest-priority candidate wins. Ties keep the first candidate
generated, i.e. channel order above, then table order within a channel.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from mfgctx.common.models import Entity


class Role(str, Enum):
    """The six context slots an entity can occupy."""

    ORDER = "order"
    JOB = "job"
    LINE = "line"
    EQUIPMENT = "equipment"
    OPERATOR = "operator"
    MATERIAL_BATCH = "material_batch"


ALL_ROLES: frozenset[Role] = frozenset(Role)


@dataclass(frozen=True)
class TypePattern:
    """A case-insensitive substring rule; lower priority wins."""

    substring: str
    role: Role
    priority: int


TYPE_PATTERNS: tuple[TypePattern, ...] = (
    TypePattern("order", Role.ORDER, 1),
    TypePattern("purchase", Role.ORDER, 2),
    TypePattern("production-job", Role.JOB, 0),
    TypePattern("job", Role.JOB, 1),
    TypePattern("work-order", Role.JOB, 2),
    TypePattern("production-line", Role.LINE, 0),
    TypePattern("line", Role.LINE, 1),
    TypePattern("equipment", Role.EQUIPMENT, 1),
    TypePattern("machine", Role.EQUIPMENT, 2),
    TypePattern("mixer", Role.EQUIPMENT, 3),
    TypePattern("filler", Role.EQUIPMENT, 3),
    TypePattern("capper", Role.EQUIPMENT, 3),
    TypePattern("operator", Role.OPERATOR, 1),
    TypePattern("worker", Role.OPERATOR, 2),
    TypePattern("user", Role.OPERATOR, 3),
    TypePattern("material", Role.MATERIAL_BATCH, 1),
    TypePattern("batch", Role.MATERIAL_BATCH, 1),
    TypePattern("ingredient", Role.MATERIAL_BATCH, 2),
)

ATTRIBUTE_HINTS: tuple[tuple[Role, frozenset[str]], ...] = (
    (Role.ORDER, frozenset({"customerId", "customerName"})),
    (Role.JOB, frozenset({"jobId", "plannedQuantity"})),
    (Role.LINE, frozenset({"lineId", "OEE"})),
    (Role.EQUIPMENT, frozenset({"equipmentId", "serialNumber"})),
    (Role.OPERATOR, frozenset({"operatorId", "shift"})),
    (Role.MATERIAL_BATCH, frozenset({"batchId", "material"})),
)

ID_PENALTY = 10
NAME_PENALTY = 20
ATTRIBUTE_PRIORITY = 0


def _pattern_candidates(
    value: str | None, penalty: int, patterns: tuple[TypePattern, ...]
) -> list[tuple[Role, int]]:
    if not value:
        return []
    lowered = value.lower()
    return [
        (pattern.role, pattern.priority + penalty)
        for pattern in patterns
        if pattern.substring.lower() in lowered
    ]


def role_candidates(
    entity: Entity, patterns: tuple[TypePattern, ...] = TYPE_PATTERNS
) -> list[tuple[Role, int]]:
    """Return every ``(role, priority)`` candidate in channel order."""
    candidates = _pattern_candidates(entity.type_id, 0, patterns)
    candidates += _pattern_candidates(entity.id, ID_PENALTY, patterns)
    candidates += _pattern_candidates(entity.display_name, NAME_PENALTY, patterns)

    keys = set(entity.attributes)
    for role, hints in ATTRIBUTE_HINTS:
        if keys & hints:
            candidates.append((role, ATTRIBUTE_PRIORITY))

    return candidates


def classify(entity: Entity, patterns: tuple[TypePattern, ...] = TYPE_PATTERNS) -> Role | None:
    """Assign zero or one role to an entity.

    Deterministic and side-effect free: the result depends only on the
    entity's type id, id, display name and attribute keys.
    """
    candidates = role_candidates(entity, patterns)
    if not candidates:
        return None
    # min() keeps the first of equal priorities, which is the tie-break order
    role, _ = min(candidates, key=lambda candidate: candidate[1])
    return role
