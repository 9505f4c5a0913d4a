"""Client library for the Sampled audio-sample marketplace on Casper."""

from sampled_client.config import load_config
from sampled_client.marketplace import SampledMarketplace

__version__ = "0.1.0"

__all__ = ["SampledMarketplace", "load_config", "__version__"]
