"""Bulletin service — build, record and relay a bulletin transaction.

The whole call runs under the account lock:

1. Resolve the authoring address and check the keystore owns it
2. Fetch the block stamp and the eligible credits at that height
3. Encode the bulletin outputs and build the fee-balanced, signed transaction
4. Validate it, stage its record, broadcast, then commit the record
"""

from __future__ import annotations

import functools
import logging
from typing import TYPE_CHECKING

from bulletin_wallet.btc.address import decode_address
from bulletin_wallet.btc.script import ScriptClass, classify_script, extract_addresses
from bulletin_wallet.bulletin.codec import Bulletin, encode_bulletin
from bulletin_wallet.errors.wallet_errors import AddressNotOwnedError
from bulletin_wallet.wallet.fees import FeePolicy
from bulletin_wallet.wallet.signer import Signer, sign_tx, validate_tx
from bulletin_wallet.wallet.txbuilder import build_bulletin_tx

if TYPE_CHECKING:
    from bulletin_wallet.engine.client import WalletEngine

logger = logging.getLogger(__name__)


class BulletinService:
    """Sends bulletins from the engine's account."""

    def __init__(self, engine: WalletEngine, *, signer: Signer | None = None) -> None:
        self._engine = engine
        self._signer = signer

    @property
    def fee_policy(self) -> FeePolicy:
        policy = self._engine.config.policy
        return FeePolicy(increment=policy.fee_increment, allow_free=policy.allow_free)

    @property
    def signer(self) -> Signer:
        if self._signer is not None:
            return self._signer
        return functools.partial(sign_tx, keystore=self._engine.keystore)

    async def send_bulletin(self, address: str, board: str, message: str) -> str:
        """Post *message* to *board* from *address* and return the txid.

        Raises:
            AddressDecodeError: If *address* is not valid on the network.
            AddressNotOwnedError: If the keystore holds no key for *address*.
            NoEligibleCreditError: If no eligible credit pays *address*.
            BulletinEncodeError: If the board or message is invalid.
            InsufficientFundsError: If the credits cannot cover burn and fee.
            SignFailedError: If an input cannot be signed.
            ValidationFailedError: If the signed transaction is invalid.
            StoreInsertError: If recording the transaction fails.
            BroadcastFailedError: If the transaction is not relayed.
            ChainError: If the block stamp cannot be fetched.
        """
        engine = self._engine
        config = engine.config
        params = config.params

        async with engine.locks.hold(config.account):
            author = decode_address(address, params)
            if not engine.keystore.owns(author):
                raise AddressNotOwnedError(address)

            stamp = await engine.chain.block_stamp()
            credits = await engine.tx_store.eligible_credits(
                config.policy.min_confirmations, stamp
            )
            logger.debug(
                "Building bulletin from %s at height %d over %d eligible credit(s)",
                address,
                stamp.height,
                len(credits),
            )

            bulletin = Bulletin(author=address, board=board, message=message)
            outputs = encode_bulletin(bulletin, config.policy.dust_amount, params)

            pending = build_bulletin_tx(
                outputs,
                credits,
                author,
                self.fee_policy,
                self.signer,
                params,
                stamp.height,
            )
            validate_tx(pending.tx, pending.inputs, params)

            async with engine.tx_store.staged_record(
                pending.tx,
                pending.inputs,
                fee=pending.fee,
                total_burn=pending.total_burn,
                bulletin=bulletin,
                is_mine=self._is_mine,
            ) as txid:
                relayed = await engine.chain.broadcast(pending.tx.to_hex())
                if relayed and relayed != txid:
                    logger.warning("Broadcaster reported txid %s for %s", relayed, txid)

        logger.info("Successfully sent bulletin %s", txid)
        return txid

    def _is_mine(self, script: bytes) -> bool:
        if classify_script(script) != ScriptClass.P2PKH:
            return False
        keystore = self._engine.keystore
        return any(keystore.owns(a) for a in extract_addresses(script, keystore.params))
