"""
Deployment orchestration for the Rebrand Tool.
"""

from rebrand_tool.orchestrator.deployment import DeploymentOrchestrator

__all__ = ["DeploymentOrchestrator"]
