"""Casper node integration components."""

from sampled_client.casper.codec import EventDecoder
from sampled_client.casper.deploys import DeployBuilder, ProxyWasmLoader
from sampled_client.casper.event_log import ContractEventLog, StateRootCache
from sampled_client.casper.queries import MarketplaceQueries
from sampled_client.casper.rpc import CasperRpcClient
from sampled_client.casper.submitter import CasperDeploySubmitter

__all__ = [
    "CasperDeploySubmitter",
    "CasperRpcClient",
    "ContractEventLog",
    "DeployBuilder",
    "EventDecoder",
    "MarketplaceQueries",
    "ProxyWasmLoader",
    "StateRootCache",
]
