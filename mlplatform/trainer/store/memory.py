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

import copy
import threading
from typing import Optional

from mlplatform.trainer.store.base import StatusStore, now
from mlplatform.trainer.types import types


class InMemoryStatusStore(StatusStore):
    """Keeps the records in process memory. Lost on restart."""

    def __init__(self):
        self._records: dict[tuple[str, str], types.JobStatusRecord] = {}
        self._lock = threading.Lock()

    def get(self, job_id: str, namespace: str) -> Optional[types.JobStatusRecord]:
        with self._lock:
            record = self._records.get((namespace, job_id))
            return copy.deepcopy(record) if record else None

    def set(self, record: types.JobStatusRecord):
        with self._lock:
            self.__put(record)

    def advance(self, record: types.JobStatusRecord) -> bool:
        with self._lock:
            current = self._records.get((record.namespace, record.job_id))
            if current is not None and record.phase.rank <= current.phase.rank:
                return False
            self.__put(record)
            return True

    def list_jobs(self, namespace: Optional[str] = None) -> list[types.JobStatusRecord]:
        with self._lock:
            return [
                copy.deepcopy(r)
                for (ns, _), r in sorted(self._records.items())
                if namespace is None or ns == namespace
            ]

    def __put(self, record: types.JobStatusRecord):
        record = copy.deepcopy(record)
        record.updated_at = now()
        if record.created_at is None:
            current = self._records.get((record.namespace, record.job_id))
            record.created_at = current.created_at if current else record.updated_at
        self._records[(record.namespace, record.job_id)] = record
