"""DeploySubmitter protocol - submits signed deploys and tracks their execution."""

from __future__ import annotations

import asyncio
from typing import Protocol

from pycspr.types.node.rpc import Deploy

from sampled_client.models.records import ExecutionOutcome, PendingTransaction


class DeploySubmitter(Protocol):
    """Hands signed deploys to the node and waits for a terminal result."""

    async def submit(self, deploy: Deploy) -> PendingTransaction:
        ...

    async def wait_for_completion(
        self, deploy_hash: str, cancel: asyncio.Event | None = None,
    ) -> ExecutionOutcome:
        ...
