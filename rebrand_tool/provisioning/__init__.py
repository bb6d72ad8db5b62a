"""
Subdomain provisioning for the Rebrand Tool.
"""

from rebrand_tool.provisioning.service import ProvisioningService

__all__ = ["ProvisioningService"]
