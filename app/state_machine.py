# state_machine.py

import logging

from error_handling import InvalidState, Unauthorized
from poll_registry import Poll, PollRegistry, PollState

logger = logging.getLogger('BallotStateMachine')

# Created -> Voting -> Ended, nothing else.
TRANSITIONS = {
    PollState.CREATED: PollState.VOTING,
    PollState.VOTING: PollState.ENDED,
}


def require_creator(poll: Poll, caller: str, action: str) -> None:
    if caller != poll.creator:
        raise Unauthorized(
            f"Only the creator of poll {poll.poll_id} may {action}",
            context={'poll_id': poll.poll_id, 'caller': caller}
        )


def require_state(poll: Poll, expected: PollState, action: str) -> None:
    if poll.state is not expected:
        raise InvalidState(
            f"Cannot {action} poll {poll.poll_id} while it is {poll.state.value}",
            context={'poll_id': poll.poll_id, 'state': poll.state.value, 'expected': expected.value}
        )


class BallotStateMachine:
    """
    Validates and applies lifecycle transitions. Authorization is checked
    before state, and both checks and the mutation run under the poll's lock.
    """
    def __init__(self, registry: PollRegistry):
        self.registry = registry

    def start_voting(self, caller: str, poll_id: int) -> Poll:
        return self._advance(caller, poll_id, PollState.CREATED, "start voting on")

    def end_voting(self, caller: str, poll_id: int) -> Poll:
        return self._advance(caller, poll_id, PollState.VOTING, "end voting on")

    def _advance(self, caller: str, poll_id: int, source: PollState, action: str) -> Poll:
        poll = self.registry.get(poll_id)
        with poll.lock:
            require_creator(poll, caller, action)
            require_state(poll, source, action)
            poll.state = TRANSITIONS[source]
        logger.info(f"Poll {poll_id} moved {source.value} -> {TRANSITIONS[source].value} by {caller}.")
        return poll
