"""Bulletin transaction builder — coin selection and fee convergence.

The input set, the fee and the serialized size depend on each other: more
inputs make the transaction larger, a larger transaction needs a larger
fee, and a larger fee may need more inputs. The true size is only known
after signing, so the builder:

1. spends the authoring credit as input 0,
2. tops up with the largest remaining credits until the burn is covered,
3. estimates size and fee and tops up again until the fee is covered,
4. adds change, signs, and compares the fee for the *signed* size with
   the estimate; if it is short, drops change, raises the estimate by one
   increment, re-funds and repeats.

The estimate only grows, so the loop ends once it covers the signed size
or the pool runs dry.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from bulletin_wallet.btc.address import Address
from bulletin_wallet.btc.network import NetworkParams
from bulletin_wallet.btc.script import pay_to_address_script
from bulletin_wallet.btc.transaction import MsgTx, TxOut
from bulletin_wallet.errors.wallet_errors import InsufficientFundsError
from bulletin_wallet.wallet.credits import Credit, CreditSet, find_authoring_credit
from bulletin_wallet.wallet.fees import TX_IN_ESTIMATE, FeePolicy, estimate_tx_size
from bulletin_wallet.wallet.signer import Signer

logger = logging.getLogger(__name__)


@dataclass
class PendingTransaction:
    """Build state of one bulletin transaction.

    Attributes:
        tx: The transaction being assembled.
        inputs: Credits spent, in input order; ``inputs[0]`` is the
            authoring credit.
        total_burn: Sum of the bulletin output values.
        change_index: Index of the change output, or None.
        size_estimate: Estimated signed size in bytes.
        fee_estimate: Fee budgeted for the transaction.
        iterations: Number of signing rounds performed.
    """

    tx: MsgTx = field(default_factory=MsgTx)
    inputs: list[Credit] = field(default_factory=list)
    total_burn: int = 0
    change_index: int | None = None
    size_estimate: int = 0
    fee_estimate: int = 0
    iterations: int = 0

    @property
    def collected(self) -> int:
        return sum(c.amount for c in self.inputs)

    @property
    def change(self) -> int:
        if self.change_index is None:
            return 0
        return self.tx.outputs[self.change_index].value

    @property
    def fee(self) -> int:
        """Fee actually paid: inputs minus outputs."""
        return self.collected - sum(out.value for out in self.tx.outputs)

    def add_input(self, credit: Credit) -> None:
        self.tx.add_input(credit.outpoint)
        self.inputs.append(credit)

    def drop_change(self) -> None:
        if self.change_index is not None:
            self.tx.remove_output(self.change_index)
            self.change_index = None


def build_bulletin_tx(
    bulletin_outputs: Sequence[TxOut],
    credits: CreditSet,
    author: Address,
    policy: FeePolicy,
    signer: Signer,
    params: NetworkParams,
    height: int,
) -> PendingTransaction:
    """Fund, fee-balance and sign a transaction carrying *bulletin_outputs*.

    Args:
        bulletin_outputs: Burn outputs encoding the bulletin.
        credits: Eligible credits of the account.
        author: Authoring address; its credit is input 0 and it receives
            the change.
        policy: Fee policy.
        signer: Callable signing every input of the transaction in place.
        params: Network parameters.
        height: Reference chain height for fee priority.

    Returns:
        The signed :class:`PendingTransaction`.

    Raises:
        NoEligibleCreditError: If no P2PKH credit pays *author*.
        InsufficientFundsError: If the credits cannot cover burn plus fee.
        SignFailedError: Propagated from *signer*.
    """
    pending = PendingTransaction()
    for out in bulletin_outputs:
        pending.tx.add_output(out.value, out.script_pubkey)
    pending.total_burn = sum(out.value for out in bulletin_outputs)

    # Authoring pass
    auth = credits[find_authoring_credit(credits, author, params)]
    pending.add_input(auth)
    pool = credits.remove(auth).sorted_by_amount()

    # Burn top-up pass
    while pending.collected < pending.total_burn:
        if not pool:
            raise InsufficientFundsError(pending.collected, pending.total_burn, 0)
        pending.add_input(pool.pop_largest())

    pending.size_estimate = estimate_tx_size(len(pending.inputs), len(pending.tx.outputs))
    pending.fee_estimate = policy.minimum_fee(
        pending.size_estimate, pending.tx.outputs, pending.inputs, height
    )
    logger.debug(
        "Funded burn %d with %d inputs; size estimate %d, fee estimate %d",
        pending.total_burn,
        len(pending.inputs),
        pending.size_estimate,
        pending.fee_estimate,
    )
    _fund_fee(pending, pool, policy, height)

    change_script = pay_to_address_script(author)
    while True:
        change = pending.collected - pending.total_burn - pending.fee_estimate
        if change > 0:
            pending.change_index = pending.tx.add_output(change, change_script)

        signer(pending.tx, pending.inputs)
        pending.iterations += 1

        actual_size = pending.tx.serialize_size()
        required = policy.fee_for_size(actual_size)
        if required <= pending.fee_estimate:
            break

        logger.debug(
            "Signed size %d needs fee %d > estimate %d; bumping",
            actual_size,
            required,
            pending.fee_estimate,
        )
        pending.drop_change()
        pending.fee_estimate += policy.increment
        _fund_fee(pending, pool, policy, height)

    logger.debug(
        "Converged after %d round(s): %d inputs, fee %d, change %d",
        pending.iterations,
        len(pending.inputs),
        pending.fee,
        pending.change,
    )
    return pending


def _fund_fee(pending: PendingTransaction, pool: CreditSet, policy: FeePolicy, height: int) -> None:
    """Add the largest credits until burn plus fee estimate are covered.

    Each added input grows the size estimate by one input; the fee
    estimate is recomputed for the new size but never lowered.
    """
    while pending.collected < pending.total_burn + pending.fee_estimate:
        if not pool:
            raise InsufficientFundsError(
                pending.collected, pending.total_burn, pending.fee_estimate
            )
        pending.add_input(pool.pop_largest())
        pending.size_estimate += TX_IN_ESTIMATE
        pending.fee_estimate = max(
            pending.fee_estimate,
            policy.minimum_fee(pending.size_estimate, pending.tx.outputs, pending.inputs, height),
        )
