"""
Funds Transfer Gateways for the Escrow Ballot Node
Moves released escrow funds to a poll creator, either inside this process
or through a remote node's transfer endpoint.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import requests

from account_manager import AccountManager

logger = logging.getLogger('TransferGateway')


class FundsTransferGateway(ABC):
    """Abstract capability to move value to an identity"""

    @abstractmethod
    def transfer(self, recipient: str, amount: int) -> bool:
        """Move amount to recipient; True only when the transfer completed"""
        pass

    @abstractmethod
    def get_info(self) -> Dict[str, Any]:
        """Get gateway information"""
        pass


class AccountTransferGateway(FundsTransferGateway):
    """Pays out of the escrow custody account held by an AccountManager"""

    def __init__(self, account_manager: AccountManager, escrow_address: str):
        self.account_manager = account_manager
        self.escrow_address = escrow_address
        self.account_manager.add_account(escrow_address)

    def transfer(self, recipient: str, amount: int) -> bool:
        # Any address can receive; only the escrow balance can fail the payout.
        self.account_manager.add_account(recipient)
        return self.account_manager.transfer(self.escrow_address, recipient, amount)

    def get_info(self) -> Dict[str, Any]:
        return {
            'type': 'account',
            'escrow_address': self.escrow_address,
            'escrow_balance': self.account_manager.get_account_balance(self.escrow_address),
        }


class RemoteTransferGateway(FundsTransferGateway):
    """Asks a remote node to execute the transfer via its /api/transfer_coins endpoint"""

    def __init__(self, node_url: str, escrow_address: str, timeout: int = 10,
                 session: Optional[requests.Session] = None):
        self.node_url = node_url.rstrip('/')
        self.escrow_address = escrow_address
        self.timeout = timeout
        self.session = session or requests.Session()

    def transfer(self, recipient: str, amount: int) -> bool:
        payload = {
            'from_address': self.escrow_address,
            'to_address': recipient,
            'amount': str(amount),
            'type': 'escrow_release',
        }
        try:
            response = self.session.post(
                f"{self.node_url}/api/transfer_coins",
                json=payload,
                timeout=self.timeout
            )
        except requests.RequestException as e:
            logger.error(f"Transfer request to {self.node_url} failed: {e}")
            return False

        if response.status_code != 200:
            logger.error(f"Node rejected transfer of {amount} to {recipient}: "
                         f"HTTP {response.status_code} {response.text}")
            return False

        logger.info(f"Node {self.node_url} executed transfer of {amount} to {recipient}.")
        return True

    def get_info(self) -> Dict[str, Any]:
        return {
            'type': 'remote',
            'node_url': self.node_url,
            'escrow_address': self.escrow_address,
        }
