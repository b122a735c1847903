"""Shared test fixtures for the manufacturing context test suite."""

import pytest

from fakes import FakeClock, InMemorySource, make_entity


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def plant_entities():
    """A bottling plant spread across ERP, MES and SCADA."""
    return [
        # ERP
        make_entity(
            "ORD-12345", "customer-order-type", "Walmart order",
            attributes={"customerId": "customer-walmart", "quantity": 10000},
            relationships={"ForCustomer": ["customer-walmart"], "HasJobs": ["job-J-2025-001"]},
            namespace="http://plant.example/erp", source_origin="erp",
        ),
        make_entity(
            "customer-walmart", "customer-type", "Walmart",
            namespace="http://plant.example/erp", source_origin="erp",
        ),
        make_entity(
            "batch-MB-2025-0142", "material-batch-type", "Sugar syrup lot",
            attributes={"batchId": "MB-2025-0142", "quantityKg": 500.0},
            relationships={"SuppliedBy": ["supplier-sweetco"], "UsedInJobs": ["job-J-2025-001"]},
            namespace="http://plant.example/erp", source_origin="erp",
        ),
        # MES
        make_entity(
            "line-1", "production-line-type", "Bottling Line 1",
            attributes={"OEE": 0.82, "status": "running"},
            relationships={
                "ExecutingJob": ["job-J-2025-001"],
                "OperatedBy": ["operator-john-smith"],
                "HasChildren": ["mixer-001", "filler-001", "capper-001"],
            },
            namespace="http://plant.example/mes", source_origin="mes",
        ),
        make_entity(
            "job-J-2025-001", "production-job-type", "Cola 500ml run",
            attributes={"plannedQuantity": 10000, "actualQuantity": 4200},
            relationships={
                "ExecutedOn": ["line-1"],
                "ConsumedMaterial": ["batch-MB-2025-0142"],
                "ProducedBy": ["operator-john-smith"],
                "ForOrder": ["ORD-12345"],
            },
            namespace="http://plant.example/mes", source_origin="mes",
        ),
        make_entity(
            "operator-john-smith", "operator-type", "John Smith",
            attributes={"shift": "day-a"},
            relationships={"Operating": ["line-1"], "AssignedToJobs": ["job-J-2025-001"]},
            namespace="http://plant.example/mes", source_origin="mes",
        ),
        # SCADA
        make_entity(
            "mixer-001", "equipment-type", "Syrup Mixer",
            attributes={"serialNumber": "MX-1", "state": "running"},
            relationships={
                "PartOf": ["line-1"],
                "DownstreamTo": ["filler-001"],
                "MaintainedBy": ["maintenance-team-a"],
            },
            namespace="http://plant.example/scada", source_origin="scada",
        ),
        make_entity(
            "filler-001", "equipment-type", "Bottle Filler",
            attributes={"serialNumber": "FL-1", "state": "degraded"},
            relationships={
                "PartOf": ["line-1"],
                "UpstreamFrom": ["mixer-001"],
                "DownstreamTo": ["capper-001"],
                "MaintainedBy": ["maintenance-team-a"],
            },
            namespace="http://plant.example/scada", source_origin="scada",
        ),
        make_entity(
            "capper-001", "equipment-type", "Capper",
            attributes={"serialNumber": "CP-1"},
            relationships={"PartOf": ["line-1"], "UpstreamFrom": ["filler-001"]},
            namespace="http://plant.example/scada", source_origin="scada",
        ),
    ]


@pytest.fixture
def plant_source(plant_entities):
    return InMemorySource(listed=plant_entities)
