# winner_resolver.py

from typing import List

from poll_registry import PollRegistry
from tally_engine import require_option


def mark_winners(counts: List[int]) -> List[bool]:
    """
    Marks every option whose count equals the maximum. With no votes cast
    every count is 0 == max, so every option is a winner.
    """
    top = max(counts, default=0)
    return [count == top for count in counts]


class WinnerResolver:
    """Read-only views over a poll's tally, each taken as one consistent snapshot."""

    def __init__(self, registry: PollRegistry):
        self.registry = registry

    def results(self, poll_id: int) -> List[int]:
        poll = self.registry.get(poll_id)
        with poll.lock:
            return list(poll.tally)

    def winners(self, poll_id: int) -> List[bool]:
        return mark_winners(self.results(poll_id))

    def get_tally(self, poll_id: int, option_index: int) -> int:
        poll = self.registry.get(poll_id)
        require_option(poll, option_index)
        with poll.lock:
            return poll.tally[option_index]
