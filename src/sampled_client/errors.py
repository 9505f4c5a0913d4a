"""Exception hierarchy for node, signer and deploy failures.

Read paths (event log, queries) catch these and degrade to empty results.
Write paths (deploy building, signing, submission) let them propagate.
"""

from __future__ import annotations


class SampledError(Exception):
    """Base class for all sampled_client errors."""


class ConfigurationError(SampledError):
    """A required setting (contract hash, proxy wasm, ...) is missing or invalid."""


class TransportError(SampledError):
    """The node could not be reached or returned an unreadable response."""


class RpcError(SampledError):
    """The node answered with a JSON-RPC ``error`` object."""

    def __init__(self, code: int | None, message: str, data: object = None) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.data = data

    def __str__(self) -> str:
        if self.code is None:
            return self.message
        return f"RPC error {self.code}: {self.message}"


class DecodeError(SampledError):
    """Event bytes were truncated or did not match the expected layout."""


class WalletNotConnected(SampledError):
    """The signer refused the connection or has no active key."""


class SigningCancelled(SampledError):
    """The user declined to sign the deploy in their wallet."""


class ExecutionFailure(SampledError):
    """The ledger executed the deploy and reported a business error."""

    def __init__(self, message: str, deploy_hash: str) -> None:
        super().__init__(message)
        self.message = message
        self.deploy_hash = deploy_hash


class DeployTimeout(SampledError):
    """No terminal execution result was observed within the polling window.

    The deploy may still execute; callers must not assume it reverted.
    """

    def __init__(self, deploy_hash: str, waited: float) -> None:
        super().__init__(
            f"Deploy {deploy_hash} outcome unknown after {waited:.0f}s"
        )
        self.deploy_hash = deploy_hash
        self.waited = waited


class WatchCancelled(SampledError):
    """The caller stopped watching a submitted deploy before it resolved.

    Like a timeout, the deploy may still execute.
    """

    def __init__(self, deploy_hash: str, watched: float) -> None:
        super().__init__(f"Stopped watching deploy {deploy_hash} after {watched:.0f}s")
        self.deploy_hash = deploy_hash
        self.watched = watched
