# tally_engine.py

import logging

from error_handling import AlreadyVoted, InsufficientContribution, InvalidOption
from escrow_ledger import EscrowLedger
from poll_registry import Poll, PollRegistry, PollState, VoterRecord
from state_machine import require_state

logger = logging.getLogger('TallyEngine')


def require_option(poll: Poll, option_index: int) -> None:
    if isinstance(option_index, bool) or not isinstance(option_index, int) \
            or not 0 <= option_index < len(poll.options):
        raise InvalidOption(
            f"Option {option_index} is out of range for poll {poll.poll_id} "
            f"({len(poll.options)} options)",
            context={'poll_id': poll.poll_id, 'option_index': option_index}
        )


class TallyEngine:
    """
    Records one vote per participant per poll. Every accepted vote weighs
    exactly one regardless of contribution; the contribution only gates
    eligibility and is handed to the escrow ledger.
    """
    def __init__(self, registry: PollRegistry, escrow: EscrowLedger, min_contribution: int):
        self.registry = registry
        self.escrow = escrow
        self.min_contribution = min_contribution

    def _require_eligible(self, poll: Poll, caller: str, option_index: int, contribution: int) -> None:
        # Callers must hold poll.lock.
        require_state(poll, PollState.VOTING, "vote on")

        record = poll.voters.get(caller)
        if record is not None and record.has_voted:
            raise AlreadyVoted(
                f"{caller} has already voted on poll {poll.poll_id}",
                context={'poll_id': poll.poll_id, 'voter': caller}
            )

        if contribution < self.min_contribution:
            raise InsufficientContribution(
                f"Contribution {contribution} is below the minimum of {self.min_contribution}",
                context={'poll_id': poll.poll_id, 'voter': caller, 'contribution': contribution}
            )

        require_option(poll, option_index)

    def check_vote(self, caller: str, poll_id: int, option_index: int, contribution: int) -> None:
        """
        Raises the error cast_vote would raise right now, without recording
        anything. Lets a host reject a vote before collecting its contribution.
        """
        poll = self.registry.get(poll_id)
        with poll.lock:
            self._require_eligible(poll, caller, option_index, contribution)

    def cast_vote(self, caller: str, poll_id: int, option_index: int, contribution: int) -> Poll:
        poll = self.registry.get(poll_id)
        with poll.lock:
            self._require_eligible(poll, caller, option_index, contribution)

            poll.tally[option_index] += 1
            poll.voters[caller] = VoterRecord(has_voted=True, contribution=contribution)
            self.escrow.deposit(poll, caller, contribution)

        logger.info(f"{caller} voted option {option_index} on poll {poll_id} with {contribution}.")
        return poll

    def has_voted(self, poll_id: int, voter: str) -> bool:
        poll = self.registry.get(poll_id)
        with poll.lock:
            record = poll.voters.get(voter)
            return record is not None and record.has_voted

    def contribution_of(self, poll_id: int, voter: str) -> int:
        poll = self.registry.get(poll_id)
        with poll.lock:
            record = poll.voters.get(voter)
            return record.contribution if record else 0
