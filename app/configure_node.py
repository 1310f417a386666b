#!/usr/bin/env python3
"""
Quick configuration script for an escrow ballot node.
Writes a .env file that BallotConfigManager loads at startup.
"""

import argparse
from pathlib import Path
from typing import List, Optional


def render_env(args: argparse.Namespace) -> str:
    remote_line = f"BALLOT_REMOTE_NODE_URL={args.remote_node_url}\n" if args.remote_node_url else ""
    return f"""# Escrow Ballot Node Configuration
BALLOT_ESCROW_ADDRESS={args.escrow_address}
BALLOT_MIN_CONTRIBUTION={args.min_contribution}
BALLOT_NETWORK_PORT={args.port}
BALLOT_TRANSFER_BACKEND={args.transfer_backend}
{remote_line}BALLOT_REQUIRE_SIGNATURES={"false" if args.environment == "development" else "true"}
BALLOT_DEBUG_MODE={"true" if args.environment == "development" else "false"}

# Logging
BALLOT_LOG_LEVEL=INFO
"""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Configure an escrow ballot node')
    parser.add_argument('--escrow-address',
                        required=True,
                        help='The custody account holding vote contributions')
    parser.add_argument('--min-contribution',
                        type=int,
                        default=10_000,
                        help='Minimum contribution per vote in base units (default: 10000)')
    parser.add_argument('--port',
                        type=int,
                        default=3500,
                        help='Port to run the node on (default: 3500)')
    parser.add_argument('--transfer-backend',
                        choices=['ledger', 'remote'],
                        default='ledger',
                        help='Where withdrawals are paid from (default: ledger)')
    parser.add_argument('--remote-node-url',
                        help='Node executing transfers when the remote backend is used')
    parser.add_argument('--environment',
                        choices=['development', 'production'],
                        default='production',
                        help='Environment mode (default: production)')
    parser.add_argument('--output',
                        default='app/.env',
                        help='Where to write the configuration (default: app/.env)')
    return parser


def main(argv: Optional[List[str]] = None) -> Path:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.transfer_backend == 'remote' and not args.remote_node_url:
        parser.error('--remote-node-url is required with --transfer-backend remote')

    env_file = Path(args.output)
    env_file.parent.mkdir(parents=True, exist_ok=True)
    env_file.write_text(render_env(args))

    print(f"✓ Configuration written to {env_file}")
    print(f"✓ Escrow address: {args.escrow_address}")
    print(f"✓ Port: {args.port}")
    print(f"✓ Transfer backend: {args.transfer_backend}")
    print(f"✓ Environment: {args.environment}")
    print(f"To start the node, run: BALLOT_ENV_FILE={env_file} python app/main.py")
    return env_file


if __name__ == '__main__':
    main()
