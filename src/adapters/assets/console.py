"""
Console asset store adapter - Implements AssetStore protocol.

Media live on an external host; this adapter only records which asset
would be removed.
"""

import logging

logger = logging.getLogger(__name__)


class ConsoleAssetStore:
    """Implements AssetStore protocol via console logging."""

    async def delete(self, url: str) -> None:
        logger.info("[ASSET] Delete: %s", url)
