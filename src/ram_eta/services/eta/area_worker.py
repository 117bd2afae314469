"""Per-area worker: partition one admin area and process its squares in parallel.

``area_worker_main`` is the entry point of the isolated worker process. It
opens its own routing oracle, streams progress to the orchestrator through a
queue and finishes with exactly one ``done`` or ``error`` message.
"""

from __future__ import annotations

import sys
import traceback
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Sequence

from ...models.domain import AdminArea, ETARecord, Origin, POI
from ...models.messages import WorkerMessage
from ..routing.base import RoutingOracle
from .partitioner import partition_area
from .square_task import Emit, SearchParameters, process_square

OracleFactory = Callable[[], RoutingOracle]


@dataclass(slots=True)
class AreaJob:
    """Everything a worker needs to process one admin area."""

    worker_id: Any
    area: AdminArea
    origins: Sequence[Origin]
    pois_by_type: Mapping[str, Sequence[POI]]
    grid_size_km: float
    params: SearchParameters
    square_concurrency: int = 1


def run_area(job: AreaJob, oracle: RoutingOracle, emit: Emit) -> list[ETARecord]:
    """Process every square of ``job.area`` and return the concatenated rows.

    Row order inside a square is kept; squares are concatenated in grid order.
    The first square failure cancels the squares that have not started and
    is re-raised.
    """
    units = partition_area(job.area, job.grid_size_km)
    emit(WorkerMessage.square_count(job.worker_id, len(units)))

    executor = ThreadPoolExecutor(max_workers=max(1, job.square_concurrency))
    try:
        futures = [
            executor.submit(
                process_square,
                unit,
                job.origins,
                job.pois_by_type,
                oracle,
                job.params,
                worker_id=job.worker_id,
                emit=emit,
            )
            for unit in units
        ]
        done, _ = wait(futures, return_when=FIRST_EXCEPTION)
        failed = next((future for future in futures if future in done and future.exception() is not None), None)
        if failed is not None:
            raise failed.exception()
        square_results = [future.result() for future in futures]
    except BaseException:
        executor.shutdown(wait=False, cancel_futures=True)
        raise
    executor.shutdown()

    return [record for records in square_results for record in records]


def area_worker_main(job: AreaJob, queue: Any, oracle_factory: OracleFactory) -> None:
    """Process entry point. Exits with status 1 after reporting any failure."""

    def emit(message: WorkerMessage) -> None:
        queue.put(message)

    try:
        emit(WorkerMessage.status(job.worker_id, "worker_started"))
        oracle = oracle_factory()
        emit(WorkerMessage.status(job.worker_id, "oracle_ready"))
        records = run_area(job, oracle, emit)
        emit(WorkerMessage.done(job.worker_id, records))
    except Exception as exc:
        emit(WorkerMessage.error(job.worker_id, str(exc) or type(exc).__name__, traceback.format_exc()))
        # Squares still running keep the process alive until the orchestrator terminates it.
        sys.exit(1)
