"""Protocol interfaces for all sampled_client components."""

from sampled_client.interfaces.event_log import EventLog
from sampled_client.interfaces.rpc import NodeRpc
from sampled_client.interfaces.signer import Signer
from sampled_client.interfaces.submitter import DeploySubmitter

__all__ = ["EventLog", "NodeRpc", "Signer", "DeploySubmitter"]
