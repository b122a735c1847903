"""Tests for nearest-role breadth-first search."""

from fakes import make_entity
from mfgctx.common.cache import GraphCache
from mfgctx.graph.discovery import GraphBuilder
from mfgctx.graph.model import ContextGraph
from mfgctx.graph.pathfinder import find_nearest
from mfgctx.graph.roles import ALL_ROLES, Role


def _build(entities) -> ContextGraph:
    # The builder's source is never touched by build()
    return GraphBuilder(source=None, cache=GraphCache(ttl_seconds=60)).build(entities)  # type: ignore[arg-type]


def _by_role(graph, paths):
    return {graph.role_of(p.end_id): p for p in paths}


class TestFindNearest:
    def test_job_line_equipment_chain(self):
        graph = _build(
            [
                make_entity("job-1", "job", relationships={"ExecutedOn": ["line-1"]}),
                make_entity("line-1", "line", relationships={"HasChildren": ["filler-1"]}),
                make_entity("filler-1", "equipment"),
            ]
        )
        paths = _by_role(graph, find_nearest(graph, "job-1", {Role.LINE, Role.EQUIPMENT}))

        assert paths[Role.LINE].node_ids == ["job-1", "line-1"]
        assert paths[Role.LINE].relationship_labels == ["ExecutedOn"]
        assert paths[Role.LINE].cost == 1
        assert paths[Role.EQUIPMENT].node_ids == ["job-1", "line-1", "filler-1"]
        assert paths[Role.EQUIPMENT].relationship_labels == ["ExecutedOn", "HasChildren"]
        assert paths[Role.EQUIPMENT].cost == 2

    def test_shortest_path_wins(self):
        graph = _build(
            [
                make_entity("job-1", "job", relationships={"Next": ["a"], "ExecutedOn": ["line-near"]}),
                make_entity("a", "thing-a", relationships={"Next": ["b"]}),
                make_entity("b", "thing-b", relationships={"Next": ["line-far"]}),
                make_entity("line-far", "line"),
                make_entity("line-near", "line"),
            ]
        )
        [path] = find_nearest(graph, "job-1", {Role.LINE})
        assert path.end_id == "line-near"
        assert path.cost == 1

    def test_cost_equals_hops(self, plant_entities):
        graph = _build(plant_entities)
        for path in find_nearest(graph, "filler-001", ALL_ROLES):
            assert path.cost == len(path.node_ids) - 1
            assert len(path.relationship_labels) == path.cost

    def test_start_node_counts_as_holder(self):
        graph = _build([make_entity("line-1", "line")])
        [path] = find_nearest(graph, "line-1", {Role.LINE})
        assert path.node_ids == ["line-1"]
        assert path.cost == 0

    def test_unreachable_roles_absent(self):
        graph = _build([make_entity("job-1", "job", relationships={"ExecutedOn": ["line-1"]}), make_entity("line-1", "line")])
        paths = find_nearest(graph, "job-1", {Role.LINE, Role.OPERATOR})
        assert [graph.role_of(p.end_id) for p in paths] == [Role.LINE]

    def test_no_targets(self, plant_entities):
        assert find_nearest(_build(plant_entities), "job-J-2025-001", set()) == []

    def test_unknown_start(self, plant_entities):
        assert find_nearest(_build(plant_entities), "nope", ALL_ROLES) == []

    def test_cycles_terminate(self):
        graph = _build(
            [
                make_entity("a", "thing", relationships={"Next": ["b"]}),
                make_entity("b", "thing", relationships={"Next": ["c"]}),
                make_entity("c", "thing", relationships={"Next": ["a"]}),
            ]
        )
        assert find_nearest(graph, "a", {Role.OPERATOR}) == []

    def test_traverses_dangling_ids(self):
        # Neither entity names the other; they meet through an id nobody returned
        graph = _build(
            [
                make_entity("job-1", "job", relationships={"RelatedTo": ["hub-9"]}),
                make_entity("line-1", "line", relationships={"RelatedTo": ["hub-9"]}),
            ]
        )
        [path] = find_nearest(graph, "job-1", {Role.LINE})
        assert path.node_ids == ["job-1", "hub-9", "line-1"]
        assert path.relationship_labels == ["RelatedTo", "RelatedTo"]
        assert path.cost == 2

    def test_reverse_edge_not_walked_backwards(self):
        graph = _build(
            [
                make_entity("filler-1", "equipment", relationships={"PartOf": ["line-1"]}),
                make_entity("line-1", "line"),
            ]
        )
        assert find_nearest(graph, "line-1", {Role.EQUIPMENT}) == []
        [path] = find_nearest(graph, "filler-1", {Role.LINE})
        assert path.relationship_labels == ["PartOf"]

    def test_plant_from_equipment_reaches_every_role(self, plant_entities):
        graph = _build(plant_entities)
        paths = _by_role(graph, find_nearest(graph, "filler-001", ALL_ROLES - {Role.EQUIPMENT}))
        assert set(paths) == ALL_ROLES - {Role.EQUIPMENT}
        assert paths[Role.LINE].node_ids == ["filler-001", "line-1"]
        assert paths[Role.JOB].node_ids == ["filler-001", "line-1", "job-J-2025-001"]
        assert paths[Role.ORDER].cost == 3

    def test_paths_in_non_decreasing_cost(self, plant_entities):
        graph = _build(plant_entities)
        costs = [p.cost for p in find_nearest(graph, "ORD-12345", ALL_ROLES)]
        assert costs == sorted(costs)
