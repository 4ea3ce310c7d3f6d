from abc import ABC, abstractmethod
from typing import List

from vocant.core.models.work_item import WorkItem


class WorkItemSourcePort(ABC):
    """Host-side source of batch input (payload bytes plus per-item parameters)."""

    @abstractmethod
    def load(self) -> List[WorkItem]:
        """Return the work items in request order, indexed from 0."""
        pass
