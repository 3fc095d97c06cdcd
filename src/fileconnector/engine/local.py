"""
Local execution engine.

Runs a ReadPlan on one host with simulated members and per-member
processors. Each processor (partition) reads its files sequentially on its
own thread; records then pass through ``stages`` on a pool of transform
workers.

With ``preserve_order`` every partition is pinned to one transform worker,
so records of one file keep their relative order end to end. Without it,
records are dealt round-robin and may be reordered.
"""

from __future__ import annotations

import logging
import queue
import threading
from concurrent.futures import ThreadPoolExecutor, wait
from pathlib import Path
from typing import Any, Callable, Iterator, List, Sequence

from fileconnector.engine.discovery import assign_files, discover_files, split_among_processors
from fileconnector.errors import ConfigurationError, ConnectorError, FileReadError
from fileconnector.formats.base import open_file
from fileconnector.plans.types import ReadPlan

logger = logging.getLogger(__name__)

Stage = Callable[[Any], Any]

# returned by a stage to drop the record
DROP = object()
_END = object()


class _Failure:
    def __init__(self, error: BaseException) -> None:
        self.error = error


def map_stage(fn: Callable[[Any], Any]) -> Stage:
    return fn


def filter_stage(predicate: Callable[[Any], bool]) -> Stage:
    def _filter(rec):
        return rec if predicate(rec) else DROP
    return _filter


def apply_stages(rec: Any, stages: Sequence[Stage]) -> Any:
    for stage in stages:
        rec = stage(rec)
        if rec is DROP:
            return DROP
    return rec


class LocalEngine:
    def __init__(
        self,
        member_count: int = 1,
        local_parallelism: int = 2,
        preserve_order: bool = True,
        transform_parallelism: int = 2,
        registry=None,
    ) -> None:
        if member_count <= 0 or local_parallelism <= 0 or transform_parallelism <= 0:
            raise ConfigurationError("member_count, local_parallelism and transform_parallelism must be positive")
        self.member_count = member_count
        self.local_parallelism = local_parallelism
        self.preserve_order = preserve_order
        self.transform_parallelism = transform_parallelism
        self.registry = registry

    @classmethod
    def from_settings(cls, settings, registry=None) -> "LocalEngine":
        return cls(
            member_count=settings.member_count,
            local_parallelism=settings.local_parallelism,
            preserve_order=settings.preserve_order,
            transform_parallelism=settings.transform_parallelism,
            registry=registry,
        )

    # ------------------------------------------------------------------
    # Topology
    # ------------------------------------------------------------------
    def partitions(self, plan: ReadPlan) -> List[List[Path]]:
        """One file list per processor, members in order."""
        if plan.sampling:
            raise ConfigurationError("Sampling plans cannot be executed as job plans")

        files = discover_files(plan)
        if not plan.shared_file_system and self.member_count > 1:
            logger.warning(
                "Local filesystem mode with %d members: each member reads its own view of %s",
                self.member_count,
                plan.path,
            )

        out: List[List[Path]] = []
        for member in range(self.member_count):
            member_files = assign_files(files, member, self.member_count, plan.shared_file_system)
            logger.info("Member %d assigned %d file(s)", member, len(member_files))
            out.extend(split_among_processors(member_files, self.local_parallelism))
        return out

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------
    def collect(self, plan: ReadPlan, stages: Sequence[Stage] = ()) -> List[Any]:
        return list(self.read(plan, stages))

    def read(self, plan: ReadPlan, stages: Sequence[Stage] = ()) -> Iterator[Any]:
        partitions = self.partitions(plan)
        stages = list(stages)
        k = self.transform_parallelism
        inboxes: List[queue.Queue] = [queue.Queue() for _ in range(k)]
        outbox: queue.Queue = queue.Queue()
        stop = threading.Event()

        def reader(pidx: int, files: List[Path]) -> None:
            turn = pidx
            for path in files:
                if stop.is_set():
                    return
                try:
                    with open_file(path, plan.format, self.registry) as stream:
                        for rec in stream:
                            if stop.is_set():
                                return
                            if self.preserve_order:
                                inboxes[pidx % k].put(rec)
                            else:
                                inboxes[turn % k].put(rec)
                                turn += 1
                        if stream.skipped:
                            logger.warning("%s: skipped %d malformed record(s)", path, len(stream.skipped))
                except (ConnectorError, OSError) as e:
                    err = FileReadError(path, str(e))
                    err.__cause__ = e
                    outbox.put(_Failure(err))
                    stop.set()
                    return
                except Exception as e:
                    outbox.put(_Failure(e))
                    stop.set()
                    return

        def transformer(inbox: queue.Queue) -> None:
            while True:
                rec = inbox.get()
                if rec is _END:
                    outbox.put(_END)
                    return
                if stop.is_set():
                    continue
                try:
                    out = apply_stages(rec, stages)
                except Exception as e:
                    outbox.put(_Failure(e))
                    stop.set()
                    continue
                if out is not DROP:
                    outbox.put(out)

        with ThreadPoolExecutor(
            max_workers=len(partitions) + k + 1, thread_name_prefix="fileconnector"
        ) as pool:
            for inbox in inboxes:
                pool.submit(transformer, inbox)
            readers = [pool.submit(reader, i, files) for i, files in enumerate(partitions)]

            def close_inboxes() -> None:
                wait(readers)
                for inbox in inboxes:
                    inbox.put(_END)

            pool.submit(close_inboxes)

            try:
                finished = 0
                while finished < k:
                    item = outbox.get()
                    if item is _END:
                        finished += 1
                        continue
                    if isinstance(item, _Failure):
                        raise item.error
                    yield item
            finally:
                stop.set()
