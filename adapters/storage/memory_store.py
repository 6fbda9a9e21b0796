"""
In-memory implementation of the health record store.

Useful for demos and tests. Production deployments would back the same
protocol with a database; the pipeline only depends on the protocol.
"""

import bisect
from collections import defaultdict

import structlog

from healthsignal.domain.models import AIMemoryNode, HealthLog, Insight

logger = structlog.get_logger(__name__)


class InMemoryHealthStore:
    """
    Per-subject record store keeping logs in chronological order.

    Logs are kept sorted by date on insert, so readers always receive the
    oldest-first ordering the pipeline expects. No method awaits while
    mutating, so concurrent tasks on one event loop never interleave writes.
    """

    def __init__(self) -> None:
        self._logs: defaultdict[str, list[HealthLog]] = defaultdict(list)
        self._memory: defaultdict[str, list[AIMemoryNode]] = defaultdict(list)
        self._insights: defaultdict[str, list[Insight]] = defaultdict(list)
        self.logger = logger.bind(component="in_memory_health_store")

    async def get_logs(self, user_id: str) -> list[HealthLog]:
        return list(self._logs[user_id])

    async def add_log(self, log: HealthLog) -> HealthLog:
        logs = self._logs[log.user_id]
        if any(existing.id == log.id for existing in logs):
            raise ValueError(f"Log {log.id} already stored")
        bisect.insort(logs, log, key=lambda entry: entry.date)
        self.logger.debug("log_added", user_id=log.user_id, log_id=log.id)
        return log

    async def get_memory_nodes(self, user_id: str) -> list[AIMemoryNode]:
        return list(self._memory[user_id])

    async def add_memory_node(self, node: AIMemoryNode) -> AIMemoryNode:
        self._memory[node.user_id].append(node)
        return node

    async def save_insight(self, insight: Insight) -> Insight:
        # Last write wins for a repeated insight id
        existing = self._insights[insight.user_id]
        existing[:] = [i for i in existing if i.id != insight.id]
        existing.insert(0, insight)
        return insight

    async def get_insights(self, user_id: str) -> list[Insight]:
        """Insights for one subject, newest first."""
        return list(self._insights[user_id])

    async def clear_all_data(self, user_id: str) -> None:
        self._logs.pop(user_id, None)
        self._memory.pop(user_id, None)
        self._insights.pop(user_id, None)
        self.logger.info("subject_data_cleared", user_id=user_id)
