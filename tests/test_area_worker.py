import pytest
from shapely.geometry import box

from ram_eta.models.domain import AdminArea, Origin, POI
from ram_eta.models.messages import MessageType
from ram_eta.services.eta.area_worker import AreaJob, area_worker_main
from ram_eta.services.eta.square_task import SearchParameters

from stubs import FailingTableOracle, StaticOracle


class ListQueue:
    def __init__(self):
        self.items = []

    def put(self, item):
        self.items.append(item)


def _job() -> AreaJob:
    return AreaJob(
        worker_id=5,
        area=AdminArea(area_id="A1", name="Area 1", geometry=box(10.0, 0.0, 10.1, 0.1)),
        origins=[Origin(longitude=10.02, latitude=0.02, properties={"id": "O1"})],
        pois_by_type={"clinic": [POI(poi_type="clinic", longitude=10.06, latitude=0.06)]},
        grid_size_km=30,
        params=SearchParameters(),
    )


def test_worker_reports_progress_then_done():
    queue = ListQueue()

    area_worker_main(_job(), queue, StaticOracle)

    types = [message.type for message in queue.items]
    assert types[0] == MessageType.STATUS
    assert MessageType.SQUARE_COUNT in types
    assert types[-1] == MessageType.DONE
    assert types.count(MessageType.DONE) == 1
    assert MessageType.ERROR not in types

    records = queue.items[-1].data
    assert [record.properties["id"] for record in records] == ["O1"]
    assert all(message.worker_id == 5 for message in queue.items)


def test_worker_reports_error_and_exits_non_zero():
    queue = ListQueue()

    with pytest.raises(SystemExit) as excinfo:
        area_worker_main(_job(), queue, FailingTableOracle)

    assert excinfo.value.code == 1
    last = queue.items[-1]
    assert last.type == MessageType.ERROR
    assert "NoTable" in last.data
    assert "OracleQueryError" in last.stack
    assert MessageType.DONE not in [message.type for message in queue.items]


def test_worker_reports_oracle_construction_failure():
    queue = ListQueue()

    def broken_factory():
        raise ValueError("OSRM base URL is not configured.")

    with pytest.raises(SystemExit):
        area_worker_main(_job(), queue, broken_factory)

    assert [message.type for message in queue.items] == [MessageType.STATUS, MessageType.ERROR]
    assert queue.items[-1].data == "OSRM base URL is not configured."
