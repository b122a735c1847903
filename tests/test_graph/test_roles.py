"""Tests for role classification."""

import pytest

from fakes import make_entity
from mfgctx.graph.roles import (
    ATTRIBUTE_HINTS,
    TYPE_PATTERNS,
    Role,
    TypePattern,
    classify,
    role_candidates,
)


class TestTypePatterns:
    def test_every_role_has_a_pattern(self):
        assert {p.role for p in TYPE_PATTERNS} == set(Role)

    def test_every_role_has_attribute_hints(self):
        assert {role for role, _ in ATTRIBUTE_HINTS} == set(Role)


class TestClassify:
    @pytest.mark.parametrize(
        "type_id,expected",
        [
            ("customer-order-type", Role.ORDER),
            ("purchase-type", Role.ORDER),
            ("production-job-type", Role.JOB),
            ("production-line-type", Role.LINE),
            ("equipment-type", Role.EQUIPMENT),
            ("machine-type", Role.EQUIPMENT),
            ("operator-type", Role.OPERATOR),
            ("worker-type", Role.OPERATOR),
            ("material-batch-type", Role.MATERIAL_BATCH),
            ("ingredient-type", Role.MATERIAL_BATCH),
        ],
    )
    def test_type_id_patterns(self, type_id, expected):
        assert classify(make_entity("x-1", type_id)) is expected

    def test_case_insensitive(self):
        assert classify(make_entity("x-1", "Production-LINE-Type")) is Role.LINE

    def test_no_signal_is_unclassified(self):
        assert classify(make_entity("customer-walmart", "customer-type", "Walmart")) is None

    def test_order_beats_work_order(self):
        # "work-order" also contains "order", which scores 1 against 2
        assert classify(make_entity("x-1", "work-order-type")) is Role.ORDER

    def test_production_job_beats_line_substring(self):
        assert classify(make_entity("x-1", "production-job-pipeline")) is Role.JOB

    def test_falls_back_to_id(self):
        assert classify(make_entity("mixer-001")) is Role.EQUIPMENT

    def test_falls_back_to_display_name(self):
        assert classify(make_entity("EQ-77", name="Night shift operator")) is Role.OPERATOR

    def test_type_beats_id(self):
        assert classify(make_entity("line-7", "equipment-type")) is Role.EQUIPMENT

    def test_attribute_hint_beats_weak_type_match(self):
        # Type "job" scores 1, the customerId attribute scores 0
        entity = make_entity("x-1", "job", attributes={"customerId": "c-1"})
        assert classify(entity) is Role.ORDER

    def test_attribute_hint_alone(self):
        assert classify(make_entity("asset-9", attributes={"serialNumber": "S-1"})) is Role.EQUIPMENT

    def test_equal_priority_keeps_table_order(self):
        # order (1) and batch (1) tie; order comes first in the table
        assert classify(make_entity("x-1", "order-batch")) is Role.ORDER

    def test_deterministic(self):
        entity = make_entity("filler-001", "equipment-type", "Filler", {"serialNumber": "F"})
        assert {classify(entity) for _ in range(20)} == {Role.EQUIPMENT}

    def test_custom_patterns(self):
        patterns = (TypePattern("press", Role.EQUIPMENT, 0),)
        assert classify(make_entity("x-1", "hydraulic-press"), patterns) is Role.EQUIPMENT
        assert classify(make_entity("x-1", "equipment-type"), patterns) is None


class TestRoleCandidates:
    def test_channel_penalties(self):
        entity = make_entity("line-7", "line", "Line seven")
        assert role_candidates(entity) == [
            (Role.LINE, 1),
            (Role.LINE, 11),
            (Role.LINE, 21),
        ]

    def test_attribute_candidates_last(self):
        entity = make_entity("x-1", attributes={"shift": "A"})
        assert role_candidates(entity) == [(Role.OPERATOR, 0)]

    def test_lower_priority_wins_regardless_of_declaration_order(self):
        patterns = (TypePattern("cell", Role.LINE, 5), TypePattern("cell", Role.EQUIPMENT, 1))
        assert classify(make_entity("x-1", "work-cell"), patterns) is Role.EQUIPMENT
