"""Deploy submission and completion polling."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable

from pycspr.types.node.rpc import Deploy

from sampled_client.casper.deploys import deploy_as_dict
from sampled_client.errors import SampledError
from sampled_client.interfaces.rpc import NodeRpc
from sampled_client.models.records import (
    ExecutionOutcome,
    ExecutionResult,
    ExecutionStatus,
    PendingTransaction,
)

log = logging.getLogger(__name__)

POLL_INTERVAL = 2.0  # seconds
COMPLETION_TIMEOUT = 120.0  # seconds


def _cost(value: object) -> int | None:
    try:
        return int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None


def _from_variant(variant: object) -> ExecutionResult | None:
    """Translate a ``{"Success": ...}`` / ``{"Failure": ...}`` object."""
    if not isinstance(variant, dict):
        return None
    if "Success" in variant:
        body = variant["Success"]
        if not isinstance(body, dict):
            body = {}
        return ExecutionResult(succeeded=True, cost=_cost(body.get("cost")))
    if "Failure" in variant:
        body = variant["Failure"]
        if not isinstance(body, dict):
            body = {}
        return ExecutionResult(
            succeeded=False,
            error_message=str(body.get("error_message") or "execution failed"),
            cost=_cost(body.get("cost")),
        )
    return None


def normalize_execution_result(result: object) -> ExecutionResult | None:
    """Reduce an ``info_get_deploy`` result to one ExecutionResult.

    Understands the 2.x ``execution_info.execution_result`` envelope
    (``Version2`` with a nullable ``error_message``, or the 1.x variants
    nested inside) and the 1.x ``execution_results`` array. Returns None
    while the deploy has not executed yet.
    """
    if not isinstance(result, dict):
        return None

    info = result.get("execution_info")
    if isinstance(info, dict) and isinstance(info.get("execution_result"), dict):
        exec_result = info["execution_result"]
        v2 = exec_result.get("Version2")
        if isinstance(v2, dict) and "error_message" in v2:
            message = v2["error_message"]
            if message is None:
                return ExecutionResult(succeeded=True, cost=_cost(v2.get("cost")))
            if message:
                return ExecutionResult(
                    succeeded=False, error_message=str(message), cost=_cost(v2.get("cost")),
                )
        nested = _from_variant(exec_result.get("Version1")) or _from_variant(exec_result)
        if nested is not None:
            return nested

    results = result.get("execution_results")
    if isinstance(results, list) and results:
        first = results[0]
        if isinstance(first, dict):
            return _from_variant(first.get("result"))
    return None


class CasperDeploySubmitter:
    """Submits signed deploys and polls ``info_get_deploy`` until they finish.

    Polls every ``poll_interval`` seconds for at most ``timeout`` seconds.
    Errors while polling (deploy not known yet, node hiccups) count as
    "still pending". No automatic resubmission.
    """

    def __init__(
        self,
        rpc: NodeRpc,
        poll_interval: float = POLL_INTERVAL,
        timeout: float = COMPLETION_TIMEOUT,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    ) -> None:
        self._rpc = rpc
        self._poll_interval = poll_interval
        self._timeout = timeout
        self._clock = clock
        self._sleep = sleep

    async def submit(self, deploy: Deploy) -> PendingTransaction:
        """Send a signed deploy. RPC and transport errors propagate."""
        if not deploy.approvals:
            raise ValueError("deploy has no approvals; sign it first")
        deploy_hash = await self._rpc.put_deploy(deploy_as_dict(deploy))
        log.info("Submitted deploy %s", deploy_hash)
        return PendingTransaction(hash=deploy_hash, submitted_at=self._clock())

    async def check(self, deploy_hash: str) -> ExecutionResult | None:
        """One status query. None while pending or when the node cannot answer."""
        try:
            result = await self._rpc.get_deploy(deploy_hash)
        except SampledError as exc:
            log.debug("info_get_deploy(%s) not available yet: %s", deploy_hash[:16], exc)
            return None
        return normalize_execution_result(result)

    async def wait_for_completion(
        self, deploy_hash: str, cancel: asyncio.Event | None = None,
    ) -> ExecutionOutcome:
        """Poll until the deploy executes, the timeout passes or ``cancel`` is set."""
        start = self._clock()
        polls = 0

        while True:
            if cancel is not None and cancel.is_set():
                log.info("Stopped watching deploy %s", deploy_hash)
                return ExecutionOutcome(
                    status=ExecutionStatus.CANCELLED,
                    deploy_hash=deploy_hash,
                    polls=polls,
                    elapsed=self._clock() - start,
                )

            polls += 1
            result = await self.check(deploy_hash)
            elapsed = self._clock() - start

            if result is not None:
                if result.succeeded:
                    log.info("Deploy %s succeeded after %d polls", deploy_hash, polls)
                    status = ExecutionStatus.SUCCEEDED
                else:
                    log.warning("Deploy %s failed: %s", deploy_hash, result.error_message)
                    status = ExecutionStatus.FAILED
                return ExecutionOutcome(
                    status=status,
                    deploy_hash=deploy_hash,
                    error_message=result.error_message,
                    cost=result.cost,
                    polls=polls,
                    elapsed=elapsed,
                )

            if elapsed + self._poll_interval >= self._timeout:
                log.warning("Deploy %s: no result after %.0fs", deploy_hash, elapsed)
                return ExecutionOutcome(
                    status=ExecutionStatus.TIMED_OUT,
                    deploy_hash=deploy_hash,
                    polls=polls,
                    elapsed=elapsed,
                )

            await self._pause(cancel)

    async def _pause(self, cancel: asyncio.Event | None) -> None:
        if cancel is None:
            await self._sleep(self._poll_interval)
            return
        # whichever finishes first ends the pause
        sleeper = asyncio.ensure_future(self._sleep(self._poll_interval))
        waiter = asyncio.ensure_future(cancel.wait())
        try:
            await asyncio.wait({sleeper, waiter}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            sleeper.cancel()
            waiter.cancel()

    async def submit_and_wait(
        self, deploy: Deploy, cancel: asyncio.Event | None = None,
    ) -> ExecutionOutcome:
        pending = await self.submit(deploy)
        return await self.wait_for_completion(pending.hash, cancel)
