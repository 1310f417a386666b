# escrow_ledger.py

import logging

from error_handling import TransferFailure
from poll_registry import Poll, PollRegistry, PollState
from state_machine import require_creator, require_state
from transfer_gateway import FundsTransferGateway

logger = logging.getLogger('EscrowLedger')
logger.setLevel(logging.INFO)
handler = logging.StreamHandler()
formatter = logging.Formatter('[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s')
handler.setFormatter(formatter)
if not logger.handlers:
    logger.addHandler(handler)


class EscrowLedger:
    """
    Custodies the funds contributed to each poll and releases them to the
    poll's creator once voting has ended.

    Withdrawal is two-phase: the balance is read and zeroed before the
    external transfer, so a re-entrant or concurrent withdrawal can never
    observe the pre-zero amount. If the transfer fails the zeroing is
    rolled back and TransferFailure is raised.
    """
    def __init__(self, registry: PollRegistry, gateway: FundsTransferGateway):
        self.registry = registry
        self.gateway = gateway

    def deposit(self, poll: Poll, voter: str, amount: int) -> None:
        """
        Credits a vote's contribution to the poll. Callers must hold poll.lock
        and have already recorded the voter, so the escrow total and the
        voter records move together.
        """
        poll.total_funds += amount
        logger.debug(f"Poll {poll.poll_id} escrow +{amount} from {voter}, total {poll.total_funds}.")

    def withdraw_funds(self, caller: str, poll_id: int) -> int:
        poll = self.registry.get(poll_id)
        with poll.lock:
            require_creator(poll, caller, "withdraw funds from")
            require_state(poll, PollState.ENDED, "withdraw funds from")

            amount = poll.total_funds
            poll.total_funds = 0

            if amount == 0:
                logger.info(f"Poll {poll_id} has no escrowed funds; nothing to withdraw.")
                return 0

            try:
                transferred = self.gateway.transfer(poll.creator, amount)
            except Exception as e:
                poll.total_funds = amount
                logger.error(f"Transfer of {amount} to {poll.creator} for poll {poll_id} raised: {e}. Escrow restored.")
                raise TransferFailure(
                    f"Transfer of {amount} to {poll.creator} failed: {e}",
                    context={'poll_id': poll_id, 'amount': amount}
                ) from e

            if not transferred:
                poll.total_funds = amount
                logger.error(f"Transfer of {amount} to {poll.creator} for poll {poll_id} rejected. Escrow restored.")
                raise TransferFailure(
                    f"Transfer of {amount} to {poll.creator} was rejected",
                    context={'poll_id': poll_id, 'amount': amount}
                )

        logger.info(f"Released {amount} from poll {poll_id} escrow to {poll.creator}.")
        return amount

    def balance_of(self, poll_id: int) -> int:
        poll = self.registry.get(poll_id)
        with poll.lock:
            return poll.total_funds
