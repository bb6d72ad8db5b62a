"""
Rebrand Tool

Deploys panel modules to domains on a remote hosting server, provisions
subdomains through the control panel and creates their DNS records.
"""

__version__ = "0.1.0"

from rebrand_tool.models.config import AppConfig
from rebrand_tool.models.results import DeploymentResult, TransferSummary

__all__ = [
    "AppConfig",
    "DeploymentResult",
    "TransferSummary",
]
