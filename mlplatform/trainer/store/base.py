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

import abc
from datetime import datetime, timezone
from typing import Optional

from mlplatform.trainer.types import types


def now() -> datetime:
    return datetime.now(timezone.utc)


class StatusStore(abc.ABC):
    """Base class for the job status stores.

    A store is the single writer's view of every JobStatusRecord. Records are keyed by
    (namespace, job_id).
    """

    @abc.abstractmethod
    def get(self, job_id: str, namespace: str) -> Optional[types.JobStatusRecord]:
        raise NotImplementedError()

    @abc.abstractmethod
    def set(self, record: types.JobStatusRecord):
        raise NotImplementedError()

    @abc.abstractmethod
    def list_jobs(self, namespace: Optional[str] = None) -> list[types.JobStatusRecord]:
        raise NotImplementedError()

    def create(self, record: types.JobStatusRecord):
        """Create the initial record of a submitted job, replacing any previous one."""
        self.set(record)

    def advance(self, record: types.JobStatusRecord) -> bool:
        """Write the record only when its phase ranks strictly higher than the stored one.

        Returns:
            Whether the record was written.
        """
        current = self.get(record.job_id, record.namespace)
        if current is not None and record.phase.rank <= current.phase.rank:
            return False
        self.set(record)
        return True

    def list_active(self) -> list[types.JobStatusRecord]:
        """List the records the reconciler still polls."""
        return [r for r in self.list_jobs() if not r.is_terminal]
