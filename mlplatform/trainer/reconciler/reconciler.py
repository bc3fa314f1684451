# Copyright 2026 The ML Platform Authors.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

from concurrent.futures import ThreadPoolExecutor
import logging
import threading
from typing import Optional

from mlplatform.trainer.backends.base import TrainingBackend
from mlplatform.trainer.errors import TransientQueryError
from mlplatform.trainer.reconciler import status
from mlplatform.trainer.reconciler.types import ReconcilerConfig
from mlplatform.trainer.store.base import StatusStore, now
from mlplatform.trainer.types import types

logger = logging.getLogger(__name__)


class StatusReconciler:
    """Polls the member clusters and moves the job status records forward.

    One background thread scans every non-terminal job each interval. The status
    queries of a scan run on a fixed-size thread pool, each bounded by its own timeout.
    A failed or timed out query leaves the record untouched until the next scan.
    """

    def __init__(
        self,
        backend: TrainingBackend,
        store: StatusStore,
        cfg: Optional[ReconcilerConfig] = None,
    ):
        self.backend = backend
        self.store = store
        self.cfg = cfg or ReconcilerConfig()

        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self):
        """Start the background scans. Does nothing when they already run."""
        with self._lock:
            if self.is_running:
                return
            self._stop_event.clear()
            self._thread = threading.Thread(
                target=self.__run, name="status-reconciler", daemon=True
            )
            self._thread.start()
        logger.debug(f"Status reconciler started with interval {self.cfg.interval}s")

    def stop(self, timeout: Optional[float] = None):
        """Stop the background scans, waiting for the scan in flight to finish."""
        with self._lock:
            self._stop_event.set()
            thread, self._thread = self._thread, None
        if thread is not None:
            thread.join(timeout)
            logger.debug("Status reconciler stopped")

    def run_once(self, executor: Optional[ThreadPoolExecutor] = None) -> int:
        """Scan the non-terminal jobs once.

        Args:
            executor: The pool that runs the status queries. They run one by one in the
                calling thread when unset.

        Returns:
            The number of records that moved forward.
        """

        records = self.store.list_active()
        if not records:
            return 0

        if executor is None:
            results = [self.reconcile_job(r) for r in records]
        else:
            results = list(executor.map(self.reconcile_job, records))
        return sum(results)

    def reconcile_job(self, record: types.JobStatusRecord) -> bool:
        """Query the status of one job and store it if its phase moved forward.

        Returns:
            Whether the record was written.
        """

        try:
            observation = self.backend.get_job_observation(
                record.job_id, record.namespace, self.cfg.query_timeout
            )
        except TransientQueryError as e:
            logger.warning(f"Failed to query status of job {record.namespace}/{record.job_id}: {e}")
            return False
        except Exception:
            logger.exception(f"Failed to query status of job {record.namespace}/{record.job_id}")
            return False

        # The status is unknown, keep the current phase.
        if observation is None:
            return False

        updated = status.next_record(record, observation, now())
        if updated is None:
            return False

        try:
            if not self.store.advance(updated):
                return False
        except Exception:
            logger.exception(f"Failed to store status of job {record.namespace}/{record.job_id}")
            return False

        logger.info(
            f"Job {record.namespace}/{record.job_id} status changed: "
            f"{record.phase.value} -> {updated.phase.value}"
        )
        return True

    def __run(self):
        with ThreadPoolExecutor(
            max_workers=self.cfg.workers, thread_name_prefix="status-query"
        ) as executor:
            while not self._stop_event.is_set():
                try:
                    self.run_once(executor)
                except Exception:
                    logger.exception("Status reconciliation scan failed")
                self._stop_event.wait(self.cfg.interval)
