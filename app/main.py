#!/usr/bin/env python3
"""
main.py – Entry point for an escrow ballot node.
Configuration comes from the environment, optionally seeded from a .env file
named by BALLOT_ENV_FILE (default: .env next to this file).
"""

import logging
import os
import sys

from flask import Flask

from ballot_node import BallotNode
from ballot_routes import ballot_bp
from config_manager import BallotConfigManager


def create_app(node: BallotNode) -> Flask:
    """
    Builds the Flask application around an already constructed node.
    """
    app = Flask(__name__)
    app.config['ballot_node'] = node
    app.register_blueprint(ballot_bp)
    return app


def main():
    env_file = os.getenv('BALLOT_ENV_FILE', os.path.join(os.path.dirname(os.path.abspath(__file__)), '.env'))
    try:
        config_manager = BallotConfigManager(env_file if os.path.exists(env_file) else None)
    except ValueError as e:
        logging.error(f"{e}")
        sys.exit(1)

    config = config_manager.get_config()
    logging.info(f"Configuration: {config_manager.get_summary()}")
    if not config_manager.is_production_ready():
        logging.warning("Configuration is not production ready.")

    node = BallotNode(config)
    app = create_app(node)
    app.run(host=config.network_host, port=config.network_port, debug=config.debug_mode)


if __name__ == '__main__':
    main()
