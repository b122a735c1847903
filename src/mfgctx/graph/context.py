"""Context aggregation -- resolve the operational context around one entity.

Given a start id, fill one slot per role (order, job, line, equipment,
operator, material batch) with the nearest entity holding that role:

1. the start entity fills its own slot,
2. BFS over a request-local view of the cached graph finds the nearest
   holder of each missing role,
3. well-known relationship labels are tried directly for roles still empty;
   steps 2 and 3 repeat while they keep filling slots,
4. the primary equipment's upstream/downstream neighbours are attached,
5. every resolved entity's relationships are merged and deduplicated.

Empty slots are a normal outcome. Only a malformed start id raises.
"""

from __future__ import annotations

import re

import structlog
from pydantic import BaseModel, ConfigDict, Field

from mfgctx.common.models import Entity, Relationship
from mfgctx.graph.discovery import GraphBuilder
from mfgctx.graph.model import ContextGraph, GraphNode
from mfgctx.graph.pathfinder import find_nearest
from mfgctx.graph.roles import ALL_ROLES, Role
from mfgctx.sources.base import EntitySource

logger = structlog.get_logger(__name__)

MAX_ID_LENGTH = 256
_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")

# Fallback order matters: a line can be derived from an equipment's parent
FALLBACK_LABELS: tuple[tuple[Role, tuple[str, ...]], ...] = (
    (Role.ORDER, ("ForOrder",)),
    (Role.JOB, ("ExecutingJob", "CurrentJob")),
    (Role.OPERATOR, ("ProducedBy", "OperatedBy")),
    (Role.MATERIAL_BATCH, ("ConsumedMaterial",)),
    (Role.EQUIPMENT, ("HasChildren", "HasEquipment")),
    (Role.LINE, ("ExecutedOn", "PartOf")),
)
UPSTREAM_LABEL = "UpstreamFrom"
DOWNSTREAM_LABEL = "DownstreamTo"

_SLOT_FIELDS: dict[Role, str] = {
    Role.ORDER: "order",
    Role.JOB: "job",
    Role.LINE: "line",
    Role.EQUIPMENT: "equipment",
    Role.OPERATOR: "operator",
    Role.MATERIAL_BATCH: "material_batch",
}


class InvalidEntityIdError(ValueError):
    """The start id violates the id contract (empty, padded, too long, ...)."""


def validate_entity_id(entity_id: object) -> str:
    if not isinstance(entity_id, str) or not entity_id:
        raise InvalidEntityIdError("Entity id must be a non-empty string.")
    if entity_id != entity_id.strip():
        raise InvalidEntityIdError("Entity id must not have leading or trailing whitespace.")
    if len(entity_id) > MAX_ID_LENGTH:
        raise InvalidEntityIdError(f"Entity id must be at most {MAX_ID_LENGTH} characters.")
    if "/" in entity_id or _CONTROL_CHARS.search(entity_id):
        raise InvalidEntityIdError("Entity id must not contain '/' or control characters.")
    return entity_id


class ContextResult(BaseModel):
    """One entity per role plus merged relationship data."""

    model_config = ConfigDict(populate_by_name=True)

    order: Entity | None = None
    job: Entity | None = None
    line: Entity | None = None
    equipment: Entity | None = None
    operator: Entity | None = None
    material_batch: Entity | None = Field(None, alias="materialBatch")
    upstream_equipment: list[Entity] = Field(default_factory=list, alias="upstreamEquipment")
    downstream_equipment: list[Entity] = Field(default_factory=list, alias="downstreamEquipment")
    merged_relationships: dict[str, list[Relationship]] = Field(default_factory=dict, alias="mergedRelationships")

    def slot(self, role: Role) -> Entity | None:
        return getattr(self, _SLOT_FIELDS[role])

    def fill(self, role: Role, entity: Entity) -> None:
        setattr(self, _SLOT_FIELDS[role], entity)

    @property
    def filled_roles(self) -> set[Role]:
        return {role for role in Role if self.slot(role) is not None}

    def entities(self) -> list[Entity]:
        """Every entity in the result: slots first, then extra equipment."""
        slots = [self.equipment, self.line, self.job, self.order, self.material_batch, self.operator]
        return [e for e in slots if e is not None] + self.upstream_equipment + self.downstream_equipment

    def equipment_ids(self) -> set[str]:
        ids = {e.id for e in self.upstream_equipment + self.downstream_equipment}
        if self.equipment is not None:
            ids.add(self.equipment.id)
        return ids


def merge_relationships(entities: list[Entity]) -> dict[str, list[Relationship]]:
    """Collect relationships from all entities, deduplicated by (label, subject, object)."""
    merged: dict[str, list[Relationship]] = {}
    seen: set[tuple[str, str, str]] = set()
    for entity in entities:
        for label, target_ids in entity.relationships.items():
            for target_id in target_ids:
                key = (label, entity.id, target_id)
                if key in seen:
                    continue
                seen.add(key)
                merged.setdefault(label, []).append(
                    Relationship(subject_id=entity.id, predicate=label, object_id=target_id)
                )
    return merged


class ContextAggregator:
    """Builds a ``ContextResult`` for any entity id."""

    def __init__(self, source: EntitySource, builder: GraphBuilder) -> None:
        self._source = source
        self._builder = builder

    async def build_context(self, start_id: str) -> ContextResult:
        start_id = validate_entity_id(start_id)
        logger.info("context_build_started", entity_id=start_id)

        # Nodes fetched on demand live only in this request's view
        graph = (await self._builder.discover()).overlay()
        result = ContextResult()

        start = await self._resolve(graph, start_id)
        if start is None:
            logger.warning("context_start_not_found", entity_id=start_id)
            return result
        start_entity, start_role = start
        self._place(result, start_role, start_entity)

        # A fallback hit can add edges that make further roles reachable
        passes = 0
        while True:
            passes += 1
            before = result.filled_roles
            await self._fill_from_paths(result, graph, start_id)
            await self._fill_from_relationships(result, graph, start_entity)
            if result.filled_roles == before:
                break

        await self._attach_neighbor_equipment(result, graph)
        result.merged_relationships = merge_relationships(result.entities())

        logger.info(
            "context_build_complete",
            entity_id=start_id,
            populated=sorted(r.value for r in result.filled_roles),
            missing=sorted(r.value for r in ALL_ROLES - result.filled_roles),
            relationship_labels=len(result.merged_relationships),
            passes=passes,
        )
        return result

    async def _fill_from_paths(self, result: ContextResult, graph: ContextGraph, start_id: str) -> None:
        remaining = ALL_ROLES - result.filled_roles
        if not remaining:
            return
        paths = find_nearest(graph, start_id, remaining)
        for path in sorted(paths, key=lambda p: p.cost):
            for node_id in path.node_ids:
                resolved = await self._resolve(graph, node_id)
                if resolved is not None:
                    self._place(result, resolved[1], resolved[0])

    async def _resolve(self, graph: ContextGraph, entity_id: str) -> tuple[Entity, Role | None] | None:
        """Look an id up in the graph, fetching and inserting it when absent."""
        node = graph.nodes.get(entity_id)
        if node is None:
            entity = await self._source.get_entity(entity_id, include_metadata=True)
            if entity is None:
                return None
            node = self._insert(graph, entity)
        return node.entity, node.role

    def _insert(self, graph: ContextGraph, entity: Entity) -> GraphNode:
        node = self._builder.make_node(entity)
        graph.add_node(node)
        graph.link_relationships(entity)
        logger.debug("context_node_inserted", entity_id=entity.id, role=node.role)
        return node

    @staticmethod
    def _place(result: ContextResult, role: Role | None, entity: Entity) -> None:
        if role is None:
            return
        if role is Role.EQUIPMENT:
            if result.equipment is None:
                result.equipment = entity
            elif entity.id not in result.equipment_ids():
                result.upstream_equipment.append(entity)
            return
        if result.slot(role) is None:
            result.fill(role, entity)

    async def _fill_from_relationships(self, result: ContextResult, graph: ContextGraph, start: Entity) -> None:
        """Try well-known relationship labels for every role BFS left empty."""
        for role, labels in FALLBACK_LABELS:
            if result.slot(role) is not None:
                continue
            entity = await self._lookup_by_label(result, graph, start, role, labels)
            if entity is None and role is Role.LINE and result.equipment is not None:
                entity = await self._parent_line(graph, result.equipment)
            if entity is not None:
                logger.debug("context_fallback_filled", role=role.value, entity_id=entity.id)
                result.fill(role, entity)

    async def _parent_line(self, graph: ContextGraph, equipment: Entity) -> Entity | None:
        parent = await self._source.get_parent(equipment.id, include_metadata=True)
        if parent is None:
            return None
        node = graph.nodes.get(parent.id) or self._insert(graph, parent)
        if node.role not in (Role.LINE, None):
            logger.debug("context_parent_not_a_line", entity_id=node.id, role=node.role.value)
            return None
        return node.entity

    async def _lookup_by_label(
        self,
        result: ContextResult,
        graph: ContextGraph,
        start: Entity,
        role: Role,
        labels: tuple[str, ...],
    ) -> Entity | None:
        holders = [start] + [e for e in result.entities() if e.id != start.id]
        for holder in holders:
            for label in labels:
                # Equipment children may include sensors etc.; keep the first-declared equipment
                for target_id in holder.relationships.get(label, []):
                    resolved = await self._resolve(graph, target_id)
                    if resolved is None:
                        continue
                    entity, target_role = resolved
                    if target_role is role or (target_role is None and role is not Role.EQUIPMENT):
                        return entity
        return None

    async def _attach_neighbor_equipment(self, result: ContextResult, graph: ContextGraph) -> None:
        primary = result.equipment
        if primary is None:
            return
        for label, bucket in (
            (UPSTREAM_LABEL, result.upstream_equipment),
            (DOWNSTREAM_LABEL, result.downstream_equipment),
        ):
            for target_id in primary.relationships.get(label, []):
                if target_id in result.equipment_ids():
                    continue
                resolved = await self._resolve(graph, target_id)
                if resolved is None:
                    continue
                entity, role = resolved
                if role in (Role.EQUIPMENT, None):
                    bucket.append(entity)
