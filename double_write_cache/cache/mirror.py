"""
Double Write Cache — Mirror Step

Propagation of a write to the secondary store is best-effort: a secondary
that lacks the capability is skipped, and exceptions it raises are handled
according to a MirrorPolicy.
"""

from __future__ import annotations

import logging
from typing import Any

from ..config.schemas import MirrorPolicy
from .capabilities import Capability, StoreCapabilities

logger = logging.getLogger(__name__)

__all__ = ["Mirror", "MirrorPolicy"]


class Mirror:
    """Runs operations against the secondary store under a MirrorPolicy."""

    def __init__(self, capabilities: StoreCapabilities, policy: MirrorPolicy = MirrorPolicy.RAISE):
        self.capabilities = capabilities
        self.policy = MirrorPolicy(policy)

    async def run(self, capability: Capability, *args: Any, **options: Any) -> Any:
        """Execute ``capability`` on the secondary store under the configured policy."""
        return await self.run_with(self.policy, capability, *args, **options)

    async def run_with(self, policy: MirrorPolicy, capability: Capability, *args: Any, **options: Any) -> Any:
        """
        Execute ``capability`` on the secondary store under ``policy``.

        Returns:
            The secondary's result, or None if the step was skipped or failed
            under a non-raising policy
        """
        operation = self.capabilities.get(capability)
        if operation is None:
            logger.debug(
                f"Secondary store does not support {capability.value}, skipping mirror",
                extra={"capability": capability.value, "store_type": type(self.capabilities.store).__qualname__},
            )
            return None

        try:
            return await operation(*args, **options)
        except Exception as e:
            if policy is MirrorPolicy.RAISE:
                raise
            log = logger.warning if policy is MirrorPolicy.LOG else logger.debug
            log(
                f"Mirror {operation.name} to secondary store failed: {e}",
                extra={"capability": capability.value, "operation": operation.name, "error": str(e)},
                exc_info=policy is MirrorPolicy.LOG,
            )
            return None
