"""Fan admin areas out to isolated worker processes and collect their ETA rows."""

from __future__ import annotations

import functools
import logging
import multiprocessing
import queue as queue_module
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Sequence

from ...config import Settings, settings
from ...models.domain import AdminArea, AreaResult, ETARecord, Origin, POI
from ...models.messages import MessageType, WorkerMessage
from ..routing.osrm_client import OSRMClient
from .area_worker import AreaJob, OracleFactory, area_worker_main
from .errors import RegionComputationError, WorkerProcessError
from .square_task import SearchParameters

logger = logging.getLogger(__name__)

JOIN_TIMEOUT_SECONDS = 5.0


def default_oracle_factory(config: Settings = settings) -> OracleFactory:
    """Picklable factory that builds an OSRM client inside each worker."""
    return functools.partial(
        OSRMClient,
        base_url=config.osrm_base_url,
        profile=config.osrm_profile,
        timeout=config.osrm_timeout_seconds,
        max_retries=config.osrm_max_retries,
        backoff_seconds=config.osrm_backoff_seconds,
        max_coordinates_per_request=config.osrm_max_coordinates_per_request,
    )


@dataclass
class _AreaState:
    index: int
    area: AdminArea
    process: Any
    log: logging.Logger
    started_at: float = field(default_factory=time.perf_counter)
    square_count: Optional[int] = None
    remaining_squares: Optional[int] = None
    error: Optional[WorkerMessage] = None


def _origins_near(area: AdminArea, origins: Sequence[Origin]) -> list[Origin]:
    min_lon, min_lat, max_lon, max_lat = area.geometry.bounds
    return [
        origin
        for origin in origins
        if min_lon <= origin.longitude <= max_lon and min_lat <= origin.latitude <= max_lat
    ]


class RegionOrchestrator:
    """Run one worker process per admin area, at most ``max_workers`` at a time.

    The run is all-or-nothing: the first worker that reports an error or exits
    abnormally gets every other worker terminated and the whole region fails
    with :class:`RegionComputationError`.
    """

    def __init__(
        self,
        oracle_factory: OracleFactory | None = None,
        *,
        max_workers: int | None = None,
        square_concurrency: int | None = None,
        start_method: str | None = None,
        poll_interval: float | None = None,
        config: Settings = settings,
    ) -> None:
        self.oracle_factory = oracle_factory or default_oracle_factory(config)
        self.max_workers = max_workers or config.resolved_area_concurrency()
        self.square_concurrency = square_concurrency or config.resolved_square_concurrency()
        self.start_method = start_method or config.worker_start_method
        self.poll_interval = poll_interval or config.worker_poll_interval_seconds
        self.config = config

    def run(
        self,
        admin_areas: Sequence[AdminArea],
        origins: Sequence[Origin],
        pois_by_type: Mapping[str, Sequence[POI]],
        *,
        grid_size_km: float | None = None,
        params: SearchParameters | None = None,
    ) -> list[AreaResult]:
        """Compute ETA rows for every admin area; results follow ``admin_areas`` order."""
        grid_size_km = grid_size_km or self.config.grid_size_km
        params = params or SearchParameters.from_settings(self.config)
        pois_by_type = {poi_type: list(pois) for poi_type, pois in pois_by_type.items()}

        context = multiprocessing.get_context(self.start_method)
        messages = context.Queue()
        pending = deque(enumerate(admin_areas))
        running: dict[int, _AreaState] = {}
        results: dict[int, AreaResult] = {}
        begin = time.perf_counter()
        logger.info(
            f"Routing {len(admin_areas)} admin areas with up to {self.max_workers} workers "
            f"({self.square_concurrency} squares each, grid {grid_size_km:g} km)"
        )

        try:
            while pending or running:
                while pending and len(running) < self.max_workers:
                    index, area = pending.popleft()
                    job = AreaJob(
                        worker_id=index,
                        area=area,
                        origins=_origins_near(area, origins),
                        pois_by_type=pois_by_type,
                        grid_size_km=grid_size_km,
                        params=params,
                        square_concurrency=self.square_concurrency,
                    )
                    running[index] = self._start_worker(context, job, messages)

                try:
                    message = messages.get(timeout=self.poll_interval)
                except queue_module.Empty:
                    message = None
                if message is not None:
                    self._handle(message, running, results)
                self._reap(running, results, messages)
        except BaseException:
            self._terminate(running)
            raise
        finally:
            messages.close()
            messages.cancel_join_thread()

        logger.info(f"Processed {len(admin_areas)} admin areas in {time.perf_counter() - begin:.2f} seconds")
        return [results[index] for index in range(len(admin_areas))]

    def _start_worker(self, context: Any, job: AreaJob, messages: Any) -> _AreaState:
        process = context.Process(
            target=area_worker_main,
            args=(job, messages, self.oracle_factory),
            name=f"area-worker-{job.worker_id}",
        )
        process.start()
        area_log = logging.getLogger(f"ram_eta.area.{job.area.name}")
        area_log.info(f"Worker started (pid {process.pid}) with {len(job.origins)} candidate origins")
        return _AreaState(index=job.worker_id, area=job.area, process=process, log=area_log)

    def _handle(self, message: WorkerMessage, running: dict[int, _AreaState], results: dict[int, AreaResult]) -> None:
        state = running.get(message.worker_id)
        if state is None:
            return

        match message.type:
            case MessageType.STATUS:
                state.log.info(f"status {message.data}")
            case MessageType.DEBUG:
                state.log.debug(str(message.data))
            case MessageType.SQUARE_COUNT:
                state.square_count = state.remaining_squares = message.data
                state.log.info(f"total squares {message.data}")
            case MessageType.SQUARE:
                if state.remaining_squares is not None:
                    state.remaining_squares -= 1
                state.log.debug(f"square processed {message.data}. Remaining {state.remaining_squares}")
            case MessageType.ERROR:
                state.error = message
                self._fail(state, running)
            case MessageType.DONE:
                records: list[ETARecord] = message.data
                elapsed = time.perf_counter() - state.started_at
                state.log.info(f"Total routing time {elapsed:.2f}s")
                if records:
                    state.log.info(f"Results returned for {len(records)} origins")
                else:
                    state.log.info("No results returned")
                results[state.index] = AreaResult(
                    area_id=state.area.area_id,
                    name=state.area.name,
                    properties=dict(state.area.properties),
                    records=records,
                    square_count=state.square_count,
                    elapsed_seconds=elapsed,
                )
                state.process.join(JOIN_TIMEOUT_SECONDS)
                del running[state.index]

    def _reap(self, running: dict[int, _AreaState], results: dict[int, AreaResult], messages: Any) -> None:
        exited = [state for state in running.values() if state.process.exitcode is not None]
        if not exited:
            return
        # An exited worker has flushed everything it sent; read it before judging the exit.
        self._drain(running, results, messages)
        for state in exited:
            if state.index in running:
                self._fail(state, running)

    def _drain(self, running: dict[int, _AreaState], results: dict[int, AreaResult], messages: Any) -> None:
        while True:
            try:
                message = messages.get_nowait()
            except queue_module.Empty:
                return
            self._handle(message, running, results)

    def _fail(self, state: _AreaState, running: dict[int, _AreaState]) -> None:
        exit_code = state.process.exitcode
        self._terminate(running)
        if state.error is not None:
            detail, stack = state.error.data, state.error.stack
        else:
            detail = "unknown" if exit_code else "worker exited without returning results"
            stack = None

        state.log.error(f"Area worker failed with exit code {exit_code}: {detail}")
        if stack:
            state.log.error(stack)
        cause = WorkerProcessError(
            f"Area worker exited with error - {detail}",
            area_id=state.area.area_id,
            area_name=state.area.name,
            exit_code=exit_code,
            remote_stack=stack,
        )
        raise RegionComputationError(f"Admin area '{state.area.name}' failed: {detail}") from cause

    @staticmethod
    def _terminate(running: dict[int, _AreaState]) -> None:
        for state in running.values():
            if state.process.is_alive():
                state.process.terminate()
        for state in running.values():
            state.process.join(JOIN_TIMEOUT_SECONDS)
        running.clear()
