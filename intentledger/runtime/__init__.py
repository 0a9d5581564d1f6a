"""
Runtime wiring for IntentLedger deployments.
"""

from intentledger.runtime.context import CONFIG_ENV_VAR, Deployment

__all__ = ["Deployment", "CONFIG_ENV_VAR"]
