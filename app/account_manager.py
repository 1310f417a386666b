# account_manager.py

from typing import Dict, Optional, List, Tuple
import logging
from threading import RLock

from events import Event

logger = logging.getLogger('AccountManager')


class AccountManager:
    """
    In-process account balances for the ballot node:
      - Holds one integer balance (base units) per address.
      - Serializes every balance change behind a single RLock.
      - Emits an event whenever a balance moves.
    """

    def __init__(self):
        # address -> balance in base units
        self.balances: Dict[str, int] = {}
        self.balances_lock = RLock()
        self.transfer_history: List[Tuple[str, str, int]] = []

        self.on_balance_updated = Event('BalanceUpdated')

    def get_all_accounts(self) -> Dict[str, int]:
        """
        Retrieves a dictionary of all account balances.

        :return: A dictionary mapping account addresses to their balances.
        """
        with self.balances_lock:
            return dict(self.balances)

    def add_account(self, address: str, initial_balance: int = 0) -> bool:
        with self.balances_lock:
            if address in self.balances:
                logger.info(f"Account {address} already exists.")
                return False
            self.balances[address] = initial_balance
        logger.info(f"New account added: {address} with balance {initial_balance}.")
        return True

    def subscribe_to_balance_updates(self, callback):
        """
        Subscribes to balance update events.

        :param callback: Callable invoked with (address, new_balance).
        """
        self.on_balance_updated.subscribe(callback)

    # ----------------------------
    # Balance Management
    # ----------------------------
    def get_account_balance(self, address: str) -> Optional[int]:
        with self.balances_lock:
            return self.balances.get(address)

    def credit_account(self, address: str, amount: int) -> bool:
        with self.balances_lock:
            if address not in self.balances:
                logger.error(f"Account {address} does not exist.")
                return False
            self.balances[address] += amount
            new_balance = self.balances[address]
        logger.debug(f"Credited {amount} to {address}. New balance: {new_balance}")
        self.on_balance_updated.emit(address, new_balance)
        return True

    def debit_account(self, address: str, amount: int) -> bool:
        with self.balances_lock:
            if address not in self.balances:
                logger.error(f"Account {address} does not exist.")
                return False
            if self.balances[address] < amount:
                logger.error(f"Insufficient balance for {address}.")
                return False
            self.balances[address] -= amount
            new_balance = self.balances[address]
        logger.debug(f"Debited {amount} from {address}. New balance: {new_balance}")
        self.on_balance_updated.emit(address, new_balance)
        return True

    def transfer(self, from_address: str, to_address: str, amount: int) -> bool:
        with self.balances_lock:
            if to_address not in self.balances:
                logger.error(f"Recipient {to_address} does not exist.")
                return False
            if not self.debit_account(from_address, amount):
                return False
            self.credit_account(to_address, amount)
            self.transfer_history.append((from_address, to_address, amount))
        logger.info(f"Transferred {amount} from {from_address} to {to_address}.")
        return True
