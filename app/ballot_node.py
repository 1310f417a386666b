# ballot_node.py

import logging
from typing import Optional

from account_manager import AccountManager
from ballot_box import BallotBox
from caller_identity import CallerIdentity
from config_manager import BallotConfig
from error_handling import ErrorHandler, InsufficientContribution, Unauthorized
from transfer_gateway import AccountTransferGateway, FundsTransferGateway, RemoteTransferGateway

logger = logging.getLogger('BallotNode')
logger.setLevel(logging.INFO)
handler = logging.StreamHandler()
formatter = logging.Formatter('[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s')
handler.setFormatter(formatter)
if not logger.handlers:
    logger.addHandler(handler)


class BallotNode:
    """
    Hosts a BallotBox: owns the account balances, the transfer gateway and
    the caller identity check, and collects each vote's contribution from
    the voter's account into the escrow custody account.
    """
    def __init__(self, config: BallotConfig, account_manager: Optional[AccountManager] = None,
                 gateway: Optional[FundsTransferGateway] = None):
        self.config = config
        self.account_manager = account_manager or AccountManager()
        self.account_manager.add_account(config.escrow_address)
        self.gateway = gateway or self._build_gateway()
        self.ballot_box = BallotBox(self.gateway, min_contribution=config.min_contribution)
        self.identity = CallerIdentity(config.chain_id, config.require_signatures)
        self.error_handler = ErrorHandler(logger)

        self.ballot_box.events.subscribe_all(self._log_event)
        logger.info(f"[BallotNode] Ready with {self.gateway.get_info()['type']} transfer gateway.")

    def _build_gateway(self) -> FundsTransferGateway:
        if self.config.transfer_backend == 'remote':
            return RemoteTransferGateway(self.config.remote_node_url, self.config.escrow_address,
                                         timeout=self.config.remote_timeout)
        return AccountTransferGateway(self.account_manager, self.config.escrow_address)

    def _log_event(self, name, *args):
        logger.info(f"[Event] {name}{args}")

    @property
    def collects_contributions(self) -> bool:
        # With a remote node the contribution is attached and settled upstream.
        return isinstance(self.gateway, AccountTransferGateway)

    def fund_account(self, address: str, amount: int) -> int:
        """Development faucet: creates the account if needed and credits it"""
        self.account_manager.add_account(address)
        self.account_manager.credit_account(address, amount)
        return self.account_manager.get_account_balance(address)

    def vote(self, voter: str, poll_id: int, option_index: int, contribution: int) -> None:
        """
        Moves the contribution from the voter into escrow custody, then records
        the vote. The core's preconditions are checked before any funds move,
        and a vote rejected after collection is refunded.
        """
        escrow = self.config.escrow_address
        if voter == escrow:
            raise Unauthorized(
                "The escrow custody account cannot vote",
                context={'poll_id': poll_id, 'voter': voter}
            )

        if not self.collects_contributions:
            self.ballot_box.cast_vote(voter, poll_id, option_index, contribution)
            return

        self.ballot_box.tally.check_vote(voter, poll_id, option_index, contribution)

        if not self.account_manager.transfer(voter, escrow, contribution):
            raise InsufficientContribution(
                f"{voter} cannot fund a contribution of {contribution}",
                context={'poll_id': poll_id, 'voter': voter, 'contribution': contribution}
            )
        try:
            self.ballot_box.cast_vote(voter, poll_id, option_index, contribution)
        except Exception:
            logger.warning(f"Vote by {voter} on poll {poll_id} rejected. Refunding {contribution}.")
            if not self.account_manager.transfer(escrow, voter, contribution):
                logger.critical(f"Refund of {contribution} to {voter} for poll {poll_id} failed.")
            raise
