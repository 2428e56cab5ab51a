"""Release pipeline: branch configuration, signing credentials, MDM rollout."""

from mobrel.services.release.environment import BRANCH_RULES, BranchRef, resolve_environment
from mobrel.services.release.model import EnvironmentClass, PublishMethod, ReleaseState

__all__ = [
    "BRANCH_RULES",
    "BranchRef",
    "EnvironmentClass",
    "PublishMethod",
    "ReleaseState",
    "resolve_environment",
]
