"""
Configuration Manager for the Escrow Ballot Node
Handles all configuration values through environment variables, an optional
.env file and centralized defaults.
"""

import os
import logging
from logging.handlers import RotatingFileHandler
from typing import Optional, Dict, Any
from dataclasses import dataclass

from dotenv import load_dotenv

from error_handling import ConfigurationError


@dataclass
class BallotConfig:
    """Configuration settings for the Escrow Ballot Node"""

    # Escrow Configuration
    min_contribution: int = 10_000  # base units required to cast a vote
    escrow_address: Optional[str] = None  # Required - custody account for contributions

    # Network Configuration
    network_port: int = 3500
    network_host: str = "0.0.0.0"

    # Transfer Configuration
    transfer_backend: str = "ledger"  # ledger, remote
    remote_node_url: Optional[str] = None
    remote_timeout: int = 10

    # Identity Configuration
    require_signatures: bool = True
    chain_id: str = "ballot-devnet"

    # Logging Configuration
    log_level: str = "INFO"
    log_file: Optional[str] = None
    log_max_size: int = 10_000_000  # 10MB
    log_backup_count: int = 5

    # Development Configuration
    debug_mode: bool = False


class BallotConfigManager:
    """Centralized configuration management for the Escrow Ballot Node"""

    def __init__(self, env_file: Optional[str] = None):
        if env_file:
            load_dotenv(env_file, override=False)
        self.config = BallotConfig()
        self._load_from_environment()
        self._validate_config()
        self._setup_logging()

    def _load_from_environment(self):
        """Load configuration from environment variables"""

        # Escrow Configuration
        self.config.min_contribution = int(os.getenv('BALLOT_MIN_CONTRIBUTION', self.config.min_contribution))
        self.config.escrow_address = os.getenv('BALLOT_ESCROW_ADDRESS')

        # Network Configuration
        self.config.network_port = int(os.getenv('PORT_NUMBER', os.getenv('BALLOT_NETWORK_PORT', self.config.network_port)))
        self.config.network_host = os.getenv('BALLOT_NETWORK_HOST', self.config.network_host)

        # Transfer Configuration
        self.config.transfer_backend = os.getenv('BALLOT_TRANSFER_BACKEND', self.config.transfer_backend)
        self.config.remote_node_url = os.getenv('BALLOT_REMOTE_NODE_URL')
        self.config.remote_timeout = int(os.getenv('BALLOT_REMOTE_TIMEOUT', self.config.remote_timeout))

        # Identity Configuration
        self.config.require_signatures = os.getenv('BALLOT_REQUIRE_SIGNATURES', 'true').lower() == 'true'
        self.config.chain_id = os.getenv('BALLOT_CHAIN_ID', self.config.chain_id)

        # Logging Configuration
        self.config.log_level = os.getenv('BALLOT_LOG_LEVEL', self.config.log_level)
        self.config.log_file = os.getenv('BALLOT_LOG_FILE')
        self.config.log_max_size = int(os.getenv('BALLOT_LOG_MAX_SIZE', self.config.log_max_size))
        self.config.log_backup_count = int(os.getenv('BALLOT_LOG_BACKUP_COUNT', self.config.log_backup_count))

        # Development Configuration
        debug_flag = os.getenv('BALLOT_DEBUG_MODE')
        if debug_flag is not None:
            self.config.debug_mode = debug_flag.lower() == 'true'
        else:
            self.config.debug_mode = os.getenv('NODE_ENV', '').lower() == 'development'

    def _validate_config(self):
        """Validate configuration values"""
        errors = []

        if not self.config.escrow_address:
            errors.append("BALLOT_ESCROW_ADDRESS is required")
        elif not self.config.escrow_address.startswith('0z') or len(self.config.escrow_address) != 42:
            errors.append(f"Invalid escrow address format: {self.config.escrow_address}. Must start with '0z' and be 42 characters long")

        if self.config.min_contribution < 0:
            errors.append(f"Invalid minimum contribution: {self.config.min_contribution}")

        if not (1 <= self.config.network_port <= 65535):
            errors.append(f"Invalid network port: {self.config.network_port}")

        valid_backends = ['ledger', 'remote']
        if self.config.transfer_backend not in valid_backends:
            errors.append(f"Invalid transfer backend: {self.config.transfer_backend}. Must be one of {valid_backends}")
        elif self.config.transfer_backend == 'remote' and not self.config.remote_node_url:
            errors.append("BALLOT_REMOTE_NODE_URL is required when the remote transfer backend is used")

        if self.config.remote_timeout <= 0:
            errors.append(f"Invalid remote timeout: {self.config.remote_timeout}")

        valid_log_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if self.config.log_level not in valid_log_levels:
            errors.append(f"Invalid log level: {self.config.log_level}. Must be one of {valid_log_levels}")

        if errors:
            raise ConfigurationError(f"Configuration validation failed: {'; '.join(errors)}")

    def _setup_logging(self):
        """Setup logging based on configuration"""
        log_level = getattr(logging, self.config.log_level.upper())

        formatter = logging.Formatter(
            '[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s'
        )

        root_logger = logging.getLogger()
        root_logger.setLevel(log_level)

        for handler in root_logger.handlers[:]:
            root_logger.removeHandler(handler)

        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

        if self.config.log_file:
            try:
                log_dir = os.path.dirname(self.config.log_file)
                if log_dir and not os.path.exists(log_dir):
                    os.makedirs(log_dir, exist_ok=True)

                file_handler = RotatingFileHandler(
                    self.config.log_file,
                    maxBytes=self.config.log_max_size,
                    backupCount=self.config.log_backup_count
                )
                file_handler.setFormatter(formatter)
                root_logger.addHandler(file_handler)
            except OSError as e:
                logging.warning(f"Could not setup file logging: {e}")

    def get_config(self) -> BallotConfig:
        """Get the current configuration"""
        return self.config

    def is_production_ready(self) -> bool:
        """Check if the configuration is ready for production"""
        if self.config.debug_mode:
            return False

        if self.config.log_level == 'DEBUG':
            return False

        if not self.config.require_signatures:
            return False  # Unsigned requests trust the claimed sender

        return True

    def get_summary(self) -> Dict[str, Any]:
        """Get a summary of the current configuration"""
        return {
            'escrow_address': self.config.escrow_address,
            'min_contribution': self.config.min_contribution,
            'network_port': self.config.network_port,
            'transfer_backend': self.config.transfer_backend,
            'require_signatures': self.config.require_signatures,
            'chain_id': self.config.chain_id,
            'log_level': self.config.log_level,
            'debug_mode': self.config.debug_mode,
            'production_ready': self.is_production_ready()
        }
