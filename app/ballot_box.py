# ballot_box.py

import logging
from typing import Dict, List, Optional

from escrow_ledger import EscrowLedger
from events import BallotEvents
from poll_registry import PollRegistry
from state_machine import BallotStateMachine
from tally_engine import TallyEngine
from transfer_gateway import FundsTransferGateway
from winner_resolver import WinnerResolver

logger = logging.getLogger('BallotBox')

DEFAULT_MIN_CONTRIBUTION = 10_000


class BallotBox:
    """
    Entry point for every ballot operation:
      - create / start / end a poll
      - cast a contribution-gated vote
      - withdraw escrowed funds to the creator
      - read tallies, results and winners

    The caller identity is supplied by the host on every mutating call.
    Each operation emits its notification after it has fully succeeded.
    """

    def __init__(self, gateway: FundsTransferGateway,
                 min_contribution: int = DEFAULT_MIN_CONTRIBUTION,
                 events: Optional[BallotEvents] = None):
        self.registry = PollRegistry()
        self.state_machine = BallotStateMachine(self.registry)
        self.escrow = EscrowLedger(self.registry, gateway)
        self.tally = TallyEngine(self.registry, self.escrow, min_contribution)
        self.resolver = WinnerResolver(self.registry)
        self.events = events or BallotEvents()

        logger.info(f"[BallotBox] Initialized with minimum contribution {min_contribution}.")

    # ----------------------------------------------------------------
    #  Mutations
    # ----------------------------------------------------------------

    def create_poll(self, caller: str, question: str, options: List[str]) -> int:
        poll = self.registry.create_poll(caller, question, options)
        self.events.poll_created.emit(poll.poll_id, poll.creator, poll.question)
        return poll.poll_id

    def start_voting(self, caller: str, poll_id: int) -> None:
        poll = self.state_machine.start_voting(caller, poll_id)
        self.events.voting_started.emit(poll_id, poll.creator)

    def end_voting(self, caller: str, poll_id: int) -> None:
        poll = self.state_machine.end_voting(caller, poll_id)
        self.events.voting_ended.emit(poll_id, poll.creator)

    def cast_vote(self, caller: str, poll_id: int, option_index: int, contribution: int) -> None:
        self.tally.cast_vote(caller, poll_id, option_index, contribution)
        self.events.vote_cast.emit(poll_id, caller, option_index, contribution)

    def withdraw_funds(self, caller: str, poll_id: int) -> int:
        amount = self.escrow.withdraw_funds(caller, poll_id)
        self.events.funds_withdrawn.emit(poll_id, caller, amount)
        return amount

    # ----------------------------------------------------------------
    #  Queries
    # ----------------------------------------------------------------

    def get_tally(self, poll_id: int, option_index: int) -> int:
        return self.resolver.get_tally(poll_id, option_index)

    def results(self, poll_id: int) -> List[int]:
        return self.resolver.results(poll_id)

    def winners(self, poll_id: int) -> List[bool]:
        return self.resolver.winners(poll_id)

    def get_poll(self, poll_id: int) -> Dict:
        return self.registry.get(poll_id).snapshot()

    def has_voted(self, poll_id: int, voter: str) -> bool:
        return self.tally.has_voted(poll_id, voter)

    def contribution_of(self, poll_id: int, voter: str) -> int:
        return self.tally.contribution_of(poll_id, voter)

    def total_funds(self, poll_id: int) -> int:
        return self.escrow.balance_of(poll_id)

    def poll_count(self) -> int:
        return self.registry.count()
