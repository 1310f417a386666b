# poll_registry.py

import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Tuple

from error_handling import InvalidOptionCount, PollNotFound

logger = logging.getLogger('BallotRegistry')


class PollState(Enum):
    CREATED = "created"
    VOTING = "voting"
    ENDED = "ended"


@dataclass
class VoterRecord:
    has_voted: bool = False
    contribution: int = 0


@dataclass
class Poll:
    """
    A single question with a fixed, ordered set of options.
    Every read or write of the mutable fields happens under `lock`.
    """
    poll_id: int
    question: str
    options: Tuple[str, ...]
    creator: str
    state: PollState = PollState.CREATED
    total_funds: int = 0
    tally: List[int] = field(default_factory=list)
    voters: Dict[str, VoterRecord] = field(default_factory=dict)
    lock: threading.RLock = field(default_factory=threading.RLock, repr=False, compare=False)

    def __post_init__(self):
        if not self.tally:
            self.tally = [0] * len(self.options)

    def snapshot(self) -> Dict:
        with self.lock:
            return {
                'poll_id': self.poll_id,
                'question': self.question,
                'options': list(self.options),
                'creator': self.creator,
                'state': self.state.value,
                'total_funds': self.total_funds,
                'voter_count': len(self.voters),
            }


class PollRegistry:
    """
    Append-only table of polls keyed by a monotonically increasing id.
    Ids are never reused; there is no update or delete.
    """
    def __init__(self):
        self._polls: List[Poll] = []
        self._next_id = 0
        self._lock = threading.Lock()

    def create_poll(self, creator: str, question: str, options: List[str]) -> Poll:
        if len(options) < 2:
            raise InvalidOptionCount(
                f"A poll needs at least 2 options, got {len(options)}",
                context={'creator': creator, 'option_count': len(options)}
            )

        with self._lock:
            poll = Poll(
                poll_id=self._next_id,
                question=question,
                options=tuple(options),
                creator=creator,
            )
            self._polls.append(poll)
            self._next_id += 1

        logger.info(f"Poll {poll.poll_id} created by {creator} with {len(options)} options.")
        return poll

    def get(self, poll_id: int) -> Poll:
        # The list only grows, so a bounds check against its length is enough.
        if not isinstance(poll_id, int) or isinstance(poll_id, bool) or not 0 <= poll_id < len(self._polls):
            raise PollNotFound(f"Poll {poll_id} does not exist", context={'poll_id': poll_id})
        return self._polls[poll_id]

    def count(self) -> int:
        return len(self._polls)
