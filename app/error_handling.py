"""
Error Handling and Validation for the Escrow Ballot Node
Defines the ballot error taxonomy, centralized error recording and input validation.
"""

import logging
import traceback
import time
from typing import Any, Dict, List, Optional, Union
from decimal import Decimal, InvalidOperation
from enum import Enum

# Base-unit amounts beyond this many digits are rejected before int conversion.
MAX_AMOUNT_DIGITS = 36


class ErrorSeverity(Enum):
    """Error severity levels"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class BallotError(Exception):
    """Base exception for Escrow Ballot errors"""

    def __init__(self, message: str, severity: ErrorSeverity = ErrorSeverity.MEDIUM,
                 error_code: Optional[str] = None, context: Optional[Dict] = None):
        super().__init__(message)
        self.message = message
        self.severity = severity
        self.error_code = error_code or self.__class__.__name__
        self.context = context or {}
        self.timestamp = time.time()


class InvalidOptionCount(BallotError):
    """Fewer than two options supplied at creation"""
    pass


class Unauthorized(BallotError):
    """Caller is not the poll's creator"""
    pass


class InvalidState(BallotError):
    """Lifecycle state does not permit the action"""
    pass


class AlreadyVoted(BallotError):
    """Caller already voted on this poll"""
    pass


class InsufficientContribution(BallotError):
    """Contribution below the configured minimum"""
    pass


class InvalidOption(BallotError):
    """Option index out of range"""
    pass


class TransferFailure(BallotError):
    """Funds transfer to the creator did not complete"""

    def __init__(self, message: str, **kwargs):
        kwargs.setdefault('severity', ErrorSeverity.HIGH)
        super().__init__(message, **kwargs)


class PollNotFound(BallotError):
    """No poll was ever issued with this id"""
    pass


class ConfigurationError(BallotError, ValueError):
    """Configuration-related errors"""
    pass


class ValidationError(BallotError):
    """Request data validation errors"""
    pass


class IdentityError(BallotError):
    """Caller identity could not be established"""
    pass


class ErrorHandler:
    """Centralized error recording and logging for the ballot node"""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)
        self.error_count = {}
        self.error_history = []
        self.max_history_size = 1000

    def handle_error(self, error: Exception, context: Optional[Dict] = None,
                     reraise: bool = False) -> Optional[Dict]:
        """Handle an error with appropriate logging and context"""

        if isinstance(error, BallotError):
            context = context or error.context or {}
            severity = error.severity
            error_code = error.error_code
            message = error.message
        else:
            context = context or {}
            severity = ErrorSeverity.MEDIUM
            error_code = type(error).__name__
            message = str(error)

        error_info = {
            'type': type(error).__name__,
            'error_code': error_code,
            'message': message,
            'context': context,
            'timestamp': time.time(),
            'traceback': traceback.format_exc()
        }

        self.error_history.append(error_info)
        if len(self.error_history) > self.max_history_size:
            self.error_history.pop(0)

        error_type = type(error).__name__
        self.error_count[error_type] = self.error_count.get(error_type, 0) + 1

        extra = {'context': context, 'error_info': error_info}
        if severity == ErrorSeverity.CRITICAL:
            self.logger.critical(f"CRITICAL ERROR [{error_code}]: {message}", extra=extra)
        elif severity == ErrorSeverity.HIGH:
            self.logger.error(f"HIGH ERROR [{error_code}]: {message}", extra=extra)
        elif severity == ErrorSeverity.MEDIUM:
            self.logger.warning(f"MEDIUM ERROR [{error_code}]: {message}", extra=extra)
        else:
            self.logger.info(f"LOW ERROR [{error_code}]: {message}", extra=extra)

        if reraise:
            raise error

        return error_info

    def get_error_summary(self) -> Dict:
        """Get summary of errors encountered"""
        return {
            'total_errors': len(self.error_history),
            'error_counts': self.error_count.copy(),
            'recent_errors': self.error_history[-10:] if self.error_history else []
        }


class Validator:
    """Input validation utilities for ballot requests"""

    @staticmethod
    def validate_address(address: str) -> bool:
        """Validate an address format (0z followed by 40 hex chars)"""
        if not isinstance(address, str):
            return False

        address = address.strip()
        return (len(address) == 42 and
                address.startswith('0z') and
                all(c in '0123456789abcdefABCDEF' for c in address[2:]))

    @staticmethod
    def validate_amount(amount: Union[str, Decimal, int]) -> int:
        """Validate and convert a monetary amount to a non-negative integer of base units"""
        if isinstance(amount, bool) or isinstance(amount, float):
            raise ValidationError(f"Invalid amount format: {amount}")
        try:
            if isinstance(amount, str):
                amount = amount.strip()
            decimal_amount = Decimal(str(amount))
        except (InvalidOperation, ValueError):
            raise ValidationError(f"Invalid amount format: {amount}")

        if not decimal_amount.is_finite():
            raise ValidationError(f"Invalid amount format: {amount}")
        if decimal_amount.adjusted() >= MAX_AMOUNT_DIGITS:
            raise ValidationError(f"Amount exceeds {MAX_AMOUNT_DIGITS} digits: {amount}")
        if decimal_amount < 0:
            raise ValidationError("Amount cannot be negative")
        if decimal_amount != decimal_amount.to_integral_value():
            raise ValidationError(f"Amount must be a whole number of base units: {amount}")
        return int(decimal_amount)

    @staticmethod
    def validate_question(question: Any) -> List[str]:
        """Validate a poll question and return list of problems"""
        errors = []
        if not isinstance(question, str):
            errors.append("Question must be a string")
        elif not question.strip():
            errors.append("Question cannot be empty")
        return errors

    @staticmethod
    def validate_options(options: Any) -> List[str]:
        """Validate the shape of an options list; the count rule belongs to the registry"""
        if not isinstance(options, list):
            return ["Options must be a list"]
        errors = []
        for index, option in enumerate(options):
            if not isinstance(option, str):
                errors.append(f"Option {index} must be a string")
        return errors

    @staticmethod
    def validate_index(value: Any, field: str = 'option_index') -> int:
        """Validate an integer index supplied in a request"""
        if isinstance(value, bool):
            raise ValidationError(f"Invalid {field}: {value}")
        if isinstance(value, float) and not value.is_integer():
            raise ValidationError(f"Invalid {field}: {value}")
        try:
            return int(value)
        except (TypeError, ValueError):
            raise ValidationError(f"Invalid {field}: {value}")
