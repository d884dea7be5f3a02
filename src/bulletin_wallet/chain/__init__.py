"""Chain service — ARC + WhatsOnChain integration."""

from bulletin_wallet.chain.service import BlockStamp, ChainService

__all__ = ["BlockStamp", "ChainService"]
