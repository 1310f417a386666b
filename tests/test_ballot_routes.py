"""
Test Suite for the ballot HTTP surface and the hosting node.
"""

from unittest.mock import MagicMock

import pytest
from ecdsa import SigningKey, SECP256k1

from ballot_node import BallotNode
from config_manager import BallotConfig
from error_handling import AlreadyVoted, InsufficientContribution, InvalidState, Unauthorized
from main import create_app

ESCROW = '0z' + 'e' * 40


def new_key():
    return SigningKey.generate(curve=SECP256k1).to_string().hex()


class TestBallotNode:
    """Contribution collection around the ballot box"""

    def setup_method(self):
        self.node = BallotNode(BallotConfig(escrow_address=ESCROW, require_signatures=False))
        self.creator = '0z' + '1' * 40
        self.voter = '0z' + '2' * 40
        self.node.fund_account(self.voter, 50_000)
        self.poll_id = self.node.ballot_box.create_poll(self.creator, "Q", ["A", "B"])

    def test_vote_moves_contribution_into_escrow(self):
        self.node.ballot_box.start_voting(self.creator, self.poll_id)
        self.node.vote(self.voter, self.poll_id, 1, 20_000)

        accounts = self.node.account_manager
        assert accounts.get_account_balance(self.voter) == 30_000
        assert accounts.get_account_balance(ESCROW) == 20_000
        assert self.node.ballot_box.total_funds(self.poll_id) == 20_000

    def test_rejected_vote_is_refunded(self):
        with pytest.raises(InvalidState):
            self.node.vote(self.voter, self.poll_id, 0, 20_000)
        assert self.node.account_manager.get_account_balance(self.voter) == 50_000
        assert self.node.account_manager.get_account_balance(ESCROW) == 0

    def test_duplicate_vote_is_refunded(self):
        self.node.ballot_box.start_voting(self.creator, self.poll_id)
        self.node.vote(self.voter, self.poll_id, 0, 10_000)
        with pytest.raises(AlreadyVoted):
            self.node.vote(self.voter, self.poll_id, 0, 10_000)
        assert self.node.account_manager.get_account_balance(self.voter) == 40_000

    def test_unfunded_voter(self):
        self.node.ballot_box.start_voting(self.creator, self.poll_id)
        with pytest.raises(InsufficientContribution):
            self.node.vote(self.voter, self.poll_id, 0, 60_000)
        assert not self.node.ballot_box.has_voted(self.poll_id, self.voter)

    def test_unfunded_voter_on_created_poll(self):
        """Lifecycle errors win over funding errors"""
        stranger = '0z' + '3' * 40
        with pytest.raises(InvalidState):
            self.node.vote(stranger, self.poll_id, 0, 20_000)
        assert self.node.account_manager.get_account_balance(ESCROW) == 0

    def test_unfunded_repeat_vote(self):
        """A repeat vote reports AlreadyVoted even when the voter is broke"""
        self.node.ballot_box.start_voting(self.creator, self.poll_id)
        self.node.vote(self.voter, self.poll_id, 0, 50_000)
        assert self.node.account_manager.get_account_balance(self.voter) == 0

        with pytest.raises(AlreadyVoted):
            self.node.vote(self.voter, self.poll_id, 1, 10_000)
        assert self.node.account_manager.get_account_balance(ESCROW) == 50_000
        assert self.node.ballot_box.results(self.poll_id) == [1, 0]

    def test_unexpected_failure_is_refunded(self):
        self.node.ballot_box.start_voting(self.creator, self.poll_id)
        self.node.ballot_box.cast_vote = MagicMock(side_effect=RuntimeError("store unavailable"))

        with pytest.raises(RuntimeError):
            self.node.vote(self.voter, self.poll_id, 0, 20_000)
        assert self.node.account_manager.get_account_balance(self.voter) == 50_000
        assert self.node.account_manager.get_account_balance(ESCROW) == 0

    def test_escrow_account_cannot_vote(self):
        self.node.fund_account(ESCROW, 30_000)
        self.node.ballot_box.start_voting(self.creator, self.poll_id)

        with pytest.raises(Unauthorized):
            self.node.vote(ESCROW, self.poll_id, 0, 10_000)
        assert self.node.account_manager.get_account_balance(ESCROW) == 30_000
        assert self.node.ballot_box.total_funds(self.poll_id) == 0
        assert not self.node.ballot_box.has_voted(self.poll_id, ESCROW)

    def test_withdraw_pays_creator_account(self):
        self.node.ballot_box.start_voting(self.creator, self.poll_id)
        self.node.vote(self.voter, self.poll_id, 0, 15_000)
        self.node.ballot_box.end_voting(self.creator, self.poll_id)

        assert self.node.ballot_box.withdraw_funds(self.creator, self.poll_id) == 15_000
        assert self.node.account_manager.get_account_balance(self.creator) == 15_000
        assert self.node.account_manager.get_account_balance(ESCROW) == 0


class TestBallotRoutes:
    """End-to-end over HTTP with signed requests"""

    def setup_method(self):
        config = BallotConfig(escrow_address=ESCROW, chain_id='ballot-test', debug_mode=True)
        self.node = BallotNode(config)
        self.client = create_app(self.node).test_client()
        self.creator_key = new_key()
        self.voter_keys = [new_key(), new_key()]

    def _signed(self, key, payload):
        return self.node.identity.sign(key, payload)

    def _address(self, key):
        return self._signed(key, {})['sender']

    def _post(self, path, key, payload):
        return self.client.post(path, json=self._signed(key, payload))

    def _create(self, options=("A", "B")):
        response = self._post('/api/ballots', self.creator_key,
                              {'action': 'create', 'question': 'A or B?', 'options': list(options)})
        assert response.status_code == 201
        return response.get_json()['poll_id']

    def _fund(self, key, amount):
        response = self.client.post('/api/faucet', json={'address': self._address(key), 'amount': str(amount)})
        assert response.status_code == 200

    def test_health(self):
        response = self.client.get('/api/health')
        assert response.status_code == 200
        assert response.get_json() == {'status': 'ok', 'polls': 0}

    def test_full_lifecycle(self):
        poll_id = self._create()
        assert self._post(f'/api/ballots/{poll_id}/start', self.creator_key,
                          {'action': 'start', 'poll_id': poll_id}).status_code == 200

        for key, amount in zip(self.voter_keys, (10_000, 20_000)):
            self._fund(key, amount)
            response = self._post(f'/api/ballots/{poll_id}/vote', key,
                                  {'action': 'vote', 'poll_id': poll_id, 'option_index': 0,
                                   'contribution': str(amount)})
            assert response.status_code == 200

        assert self._post(f'/api/ballots/{poll_id}/end', self.creator_key,
                          {'action': 'end', 'poll_id': poll_id}).status_code == 200

        assert self.client.get(f'/api/ballots/{poll_id}/results').get_json()['results'] == [2, 0]
        assert self.client.get(f'/api/ballots/{poll_id}/winners').get_json()['winners'] == [True, False]
        assert self.client.get(f'/api/ballots/{poll_id}/tally/0').get_json()['count'] == 2

        response = self._post(f'/api/ballots/{poll_id}/withdraw', self.creator_key,
                              {'action': 'withdraw', 'poll_id': poll_id})
        assert response.status_code == 200
        assert response.get_json()['amount'] == '30000'

        balance = self.client.get('/api/balance', query_string={'address': self._address(self.creator_key)})
        assert balance.get_json()['balance'] == '30000'

        poll = self.client.get(f'/api/ballots/{poll_id}').get_json()
        assert poll['state'] == 'ended'
        assert poll['total_funds'] == '0'

    def test_error_codes(self):
        poll_id = self._create()
        voter = self.voter_keys[0]

        response = self._post(f'/api/ballots/{poll_id}/start', voter, {'action': 'start', 'poll_id': poll_id})
        assert response.status_code == 403
        assert response.get_json()['code'] == 'Unauthorized'

        response = self._post(f'/api/ballots/{poll_id}/end', self.creator_key, {'action': 'end', 'poll_id': poll_id})
        assert response.status_code == 409
        assert response.get_json()['code'] == 'InvalidState'

        response = self._post('/api/ballots', self.creator_key, {'action': 'create', 'question': 'Q', 'options': ['A']})
        assert response.status_code == 400
        assert response.get_json()['code'] == 'InvalidOptionCount'

        assert self.client.get('/api/ballots/42').status_code == 404
        assert self.client.get(f'/api/ballots/{poll_id}/tally/5').status_code == 400

        summary = self.node.error_handler.get_error_summary()
        assert summary['error_counts']['Unauthorized'] == 1

    def test_vote_below_minimum(self):
        poll_id = self._create()
        self._post(f'/api/ballots/{poll_id}/start', self.creator_key, {'action': 'start', 'poll_id': poll_id})
        voter = self.voter_keys[0]
        self._fund(voter, 50_000)

        response = self._post(f'/api/ballots/{poll_id}/vote', voter,
                              {'action': 'vote', 'poll_id': poll_id, 'option_index': 1, 'contribution': '9999'})
        assert response.status_code == 402
        assert response.get_json()['code'] == 'InsufficientContribution'

        poll = self.client.get(f'/api/ballots/{poll_id}', query_string={'voter': self._address(voter)}).get_json()
        assert poll['has_voted'] is False
        assert poll['contribution'] == '0'

    @pytest.mark.parametrize("field,value", [
        ('contribution', 'NaN'),
        ('contribution', 'Infinity'),
        ('contribution', '1e999999999'),
        ('option_index', 1.9),
    ])
    def test_malformed_vote_fields(self, field, value):
        poll_id = self._create()
        self._post(f'/api/ballots/{poll_id}/start', self.creator_key, {'action': 'start', 'poll_id': poll_id})
        voter = self.voter_keys[0]
        self._fund(voter, 50_000)

        payload = {'action': 'vote', 'poll_id': poll_id, 'option_index': 0, 'contribution': '10000'}
        payload[field] = value
        response = self._post(f'/api/ballots/{poll_id}/vote', voter, payload)
        assert response.status_code == 400
        assert response.get_json()['code'] == 'ValidationError'

        balance = self.client.get('/api/balance', query_string={'address': self._address(voter)})
        assert balance.get_json()['balance'] == '50000'
        assert self.client.get(f'/api/ballots/{poll_id}/results').get_json()['results'] == [0, 0]

    def test_non_string_public_key_is_unauthenticated(self):
        poll_id = self._create()
        signed = self._signed(self.creator_key, {'action': 'start', 'poll_id': poll_id})
        signed['public_key'] = 123
        response = self.client.post(f'/api/ballots/{poll_id}/start', json=signed)
        assert response.status_code == 401
        assert response.get_json()['code'] == 'IdentityError'

    def test_fractional_poll_id_rejected(self):
        poll_id = self._create()
        response = self._post(f'/api/ballots/{poll_id}/start', self.creator_key, {'action': 'start', 'poll_id': 0.5})
        assert response.status_code == 400
        assert self.client.get(f'/api/ballots/{poll_id}').get_json()['state'] == 'created'

    def test_signature_bound_to_action_and_poll(self):
        first = self._create()
        second = self._create()

        start_first = self._signed(self.creator_key, {'action': 'start', 'poll_id': first})
        response = self.client.post(f'/api/ballots/{second}/start', json=start_first)
        assert response.status_code == 400

        response = self.client.post(f'/api/ballots/{first}/end', json=start_first)
        assert response.status_code == 400

        forged = dict(start_first, sender='0z' + 'f' * 40)
        response = self.client.post(f'/api/ballots/{first}/start', json=forged)
        assert response.status_code == 401

    def test_faucet_disabled_outside_debug(self):
        self.node.config.debug_mode = False
        response = self.client.post('/api/faucet', json={'address': ESCROW, 'amount': '1'})
        assert response.status_code == 403
