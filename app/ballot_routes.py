# ballot_routes.py

from flask import Blueprint, jsonify, request, current_app
import logging

from error_handling import BallotError, ValidationError, Validator

ballot_bp = Blueprint('ballot_bp', __name__)
logger = logging.getLogger('BallotRoutes')

STATUS_BY_ERROR = {
    'ValidationError': 400,
    'InvalidOptionCount': 400,
    'InvalidOption': 400,
    'IdentityError': 401,
    'InsufficientContribution': 402,
    'Unauthorized': 403,
    'PollNotFound': 404,
    'InvalidState': 409,
    'AlreadyVoted': 409,
    'TransferFailure': 502,
}


def _node():
    return current_app.config.get('ballot_node')


def _error_response(error: BallotError):
    node = _node()
    if node is not None:
        node.error_handler.handle_error(error, {'path': request.path})
    status = STATUS_BY_ERROR.get(error.error_code, 400)
    return jsonify({"error": error.message, "code": error.error_code}), status


def _signed_payload(action: str):
    """
    Returns (payload, caller) for a mutating request. The signed body must
    name the action it authorizes so a signature cannot be replayed against
    a different endpoint.
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    if data.get('action') != action:
        raise ValidationError(f"Signed action must be '{action}'")
    caller = _node().identity.resolve(data)
    return data, caller


def _check_poll_binding(data, poll_id: int):
    if Validator.validate_index(data.get('poll_id'), 'poll_id') != poll_id:
        raise ValidationError("Signed poll_id does not match the URL")


@ballot_bp.route('/api/health', methods=['GET'])
def health_check():
    """
    Health check endpoint to verify node availability.
    """
    node = _node()
    if not node:
        return jsonify({"error": "Ballot node not available"}), 500
    return jsonify({"status": "ok", "polls": node.ballot_box.poll_count()}), 200


@ballot_bp.route('/api/ballots', methods=['POST'])
def create_ballot():
    """
    Creates a poll.
    Expects signed JSON: { "action": "create", "question": "...", "options": ["A", "B"], "sender": "0z..." }
    """
    node = _node()
    if not node:
        return jsonify({"error": "Ballot node not available"}), 500
    try:
        data, caller = _signed_payload('create')
        problems = Validator.validate_question(data.get('question')) + Validator.validate_options(data.get('options'))
        if problems:
            raise ValidationError('; '.join(problems))
        poll_id = node.ballot_box.create_poll(caller, data['question'], data['options'])
        return jsonify({"message": "Poll created", "poll_id": poll_id}), 201
    except BallotError as e:
        return _error_response(e)


@ballot_bp.route('/api/ballots/<int:poll_id>/start', methods=['POST'])
def start_voting(poll_id):
    node = _node()
    if not node:
        return jsonify({"error": "Ballot node not available"}), 500
    try:
        data, caller = _signed_payload('start')
        _check_poll_binding(data, poll_id)
        node.ballot_box.start_voting(caller, poll_id)
        return jsonify({"message": "Voting started", "poll_id": poll_id}), 200
    except BallotError as e:
        return _error_response(e)


@ballot_bp.route('/api/ballots/<int:poll_id>/end', methods=['POST'])
def end_voting(poll_id):
    node = _node()
    if not node:
        return jsonify({"error": "Ballot node not available"}), 500
    try:
        data, caller = _signed_payload('end')
        _check_poll_binding(data, poll_id)
        node.ballot_box.end_voting(caller, poll_id)
        return jsonify({"message": "Voting ended", "poll_id": poll_id}), 200
    except BallotError as e:
        return _error_response(e)


@ballot_bp.route('/api/ballots/<int:poll_id>/vote', methods=['POST'])
def cast_vote(poll_id):
    """
    Casts a vote.
    Expects signed JSON: { "action": "vote", "poll_id": 0, "option_index": 1, "contribution": "10000", "sender": "0z..." }
    """
    node = _node()
    if not node:
        return jsonify({"error": "Ballot node not available"}), 500
    try:
        data, caller = _signed_payload('vote')
        _check_poll_binding(data, poll_id)
        option_index = Validator.validate_index(data.get('option_index'))
        contribution = Validator.validate_amount(data.get('contribution'))
        node.vote(caller, poll_id, option_index, contribution)
        return jsonify({"message": "Vote recorded", "poll_id": poll_id}), 200
    except BallotError as e:
        return _error_response(e)


@ballot_bp.route('/api/ballots/<int:poll_id>/withdraw', methods=['POST'])
def withdraw_funds(poll_id):
    node = _node()
    if not node:
        return jsonify({"error": "Ballot node not available"}), 500
    try:
        data, caller = _signed_payload('withdraw')
        _check_poll_binding(data, poll_id)
        amount = node.ballot_box.withdraw_funds(caller, poll_id)
        return jsonify({"message": "Funds withdrawn", "poll_id": poll_id, "amount": str(amount)}), 200
    except BallotError as e:
        return _error_response(e)


@ballot_bp.route('/api/ballots/<int:poll_id>', methods=['GET'])
def get_ballot(poll_id):
    node = _node()
    if not node:
        return jsonify({"error": "Ballot node not available"}), 500
    try:
        poll = node.ballot_box.get_poll(poll_id)
        poll['total_funds'] = str(poll['total_funds'])
        voter = request.args.get('voter')
        if voter:
            poll['has_voted'] = node.ballot_box.has_voted(poll_id, voter)
            poll['contribution'] = str(node.ballot_box.contribution_of(poll_id, voter))
        return jsonify(poll), 200
    except BallotError as e:
        return _error_response(e)


@ballot_bp.route('/api/ballots/<int:poll_id>/results', methods=['GET'])
def get_results(poll_id):
    node = _node()
    if not node:
        return jsonify({"error": "Ballot node not available"}), 500
    try:
        return jsonify({"poll_id": poll_id, "results": node.ballot_box.results(poll_id)}), 200
    except BallotError as e:
        return _error_response(e)


@ballot_bp.route('/api/ballots/<int:poll_id>/winners', methods=['GET'])
def get_winners(poll_id):
    node = _node()
    if not node:
        return jsonify({"error": "Ballot node not available"}), 500
    try:
        return jsonify({"poll_id": poll_id, "winners": node.ballot_box.winners(poll_id)}), 200
    except BallotError as e:
        return _error_response(e)


@ballot_bp.route('/api/ballots/<int:poll_id>/tally/<int:option_index>', methods=['GET'])
def get_tally(poll_id, option_index):
    node = _node()
    if not node:
        return jsonify({"error": "Ballot node not available"}), 500
    try:
        count = node.ballot_box.get_tally(poll_id, option_index)
        return jsonify({"poll_id": poll_id, "option_index": option_index, "count": count}), 200
    except BallotError as e:
        return _error_response(e)


@ballot_bp.route('/api/balance', methods=['GET'])
def get_balance():
    """
    Balance of an account held by this node.
    Expects a query parameter 'address'.
    """
    node = _node()
    if not node:
        return jsonify({"error": "Ballot node not available"}), 500
    address = request.args.get('address')
    if not address:
        return jsonify({"error": "Address not provided"}), 400
    balance = node.account_manager.get_account_balance(address)
    if balance is None:
        return jsonify({"error": "Account not found"}), 404
    return jsonify({"address": address, "balance": str(balance)}), 200


@ballot_bp.route('/api/faucet', methods=['POST'])
def faucet():
    """
    Development-only: credits an account. Expects JSON: { "address": "0z...", "amount": "50000" }
    """
    node = _node()
    if not node:
        return jsonify({"error": "Ballot node not available"}), 500
    if not node.config.debug_mode:
        return jsonify({"error": "Faucet is only available in debug mode"}), 403
    try:
        data = request.get_json(silent=True) or {}
        address = data.get('address')
        if not Validator.validate_address(address):
            raise ValidationError(f"Invalid address: {address}")
        amount = Validator.validate_amount(data.get('amount'))
        balance = node.fund_account(address, amount)
        return jsonify({"address": address, "balance": str(balance)}), 200
    except BallotError as e:
        return _error_response(e)
