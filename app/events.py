# events.py

import logging
from typing import Callable, List

logger = logging.getLogger('BallotEvents')


class Event:
    """
    Simple Event class to handle event subscriptions and emissions.
    """
    def __init__(self, name: str):
        self.name = name
        self.subscribers: List[Callable] = []

    def subscribe(self, callback: Callable):
        """
        Subscribes a callback function to the event.

        :param callback: Callable to be invoked when the event is emitted.
        """
        self.subscribers.append(callback)

    def emit(self, *args, **kwargs):
        """
        Emits the event, invoking all subscribed callbacks.
        A failing subscriber is logged and does not affect the others.
        """
        for subscriber in self.subscribers:
            try:
                subscriber(*args, **kwargs)
            except Exception as e:
                logger.error(f"Error in {self.name} subscriber: {e}")


class BallotEvents:
    """
    Notifications emitted by the ballot box, one Event per operation.
    """
    def __init__(self):
        self.poll_created = Event('PollCreated')          # (poll_id, creator, question)
        self.voting_started = Event('VotingStarted')      # (poll_id, creator)
        self.voting_ended = Event('VotingEnded')          # (poll_id, creator)
        self.vote_cast = Event('VoteCast')                # (poll_id, voter, option_index, contribution)
        self.funds_withdrawn = Event('FundsWithdrawn')    # (poll_id, creator, amount)

    def subscribe_all(self, callback: Callable):
        """
        Subscribes one callback to every event. The callback receives the
        event name followed by the event's arguments.
        """
        for event in (self.poll_created, self.voting_started, self.voting_ended,
                      self.vote_cast, self.funds_withdrawn):
            event.subscribe(lambda *args, _name=event.name: callback(_name, *args))
