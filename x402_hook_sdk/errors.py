from typing import Any, Dict, List, Optional


class X402Error(Exception):
    """Base class for every error raised by the SDK."""

    code = "X402_ERROR"

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code

    def to_dict(self) -> Dict[str, Any]:
        return {"error": type(self).__name__, "code": self.code, "message": self.message}


class ConfigurationError(X402Error):
    """Raised when required configuration is missing or invalid."""

    code = "CONFIGURATION_ERROR"

    def __init__(self, message: str, missing_fields: Optional[List[str]] = None):
        super().__init__(message)
        self.missing_fields = list(missing_fields or [])

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["missingFields"] = self.missing_fields
        return data


class ContractNotFoundError(X402Error):
    """Raised when no contract answers at an expected hook address."""

    code = "CONTRACT_NOT_FOUND"

    def __init__(self, address: str):
        super().__init__(f"Contract not found at address: {address}")
        self.address = address

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["address"] = self.address
        return data


class NetworkError(X402Error):
    """Raised on transport or RPC failures."""

    code = "NETWORK_ERROR"

    def __init__(self, message: str, url: Optional[str] = None, status: Optional[int] = None):
        super().__init__(message)
        self.url = url
        self.status = status

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["url"] = self.url
        data["status"] = self.status
        return data


class SignatureError(X402Error):
    """Raised when a signature does not have the expected shape."""

    code = "SIGNATURE_ERROR"

    def __init__(self, message: str, details: Optional[str] = None):
        super().__init__(message)
        self.details = details

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["details"] = self.details
        return data


class TransactionError(X402Error):
    """Raised when the ledger rejects or reverts a settlement call."""

    code = "TRANSACTION_ERROR"

    def __init__(self, message: str, tx_hash: Optional[str] = None, revert_reason: Optional[str] = None):
        super().__init__(message)
        self.tx_hash = tx_hash
        self.revert_reason = revert_reason

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["txHash"] = self.tx_hash
        data["revertReason"] = self.revert_reason
        return data


class HookDataError(X402Error):
    """Raised when hook parameters cannot be encoded for a hook type."""

    code = "HOOK_DATA_ERROR"


class HookDataDecodeError(HookDataError):
    code = "HOOK_DATA_DECODE_ERROR"


class InvalidAmountError(X402Error, ValueError):
    """Raised when a decimal amount string cannot be converted to token units."""

    code = "INVALID_AMOUNT"

    def __init__(self, amount: Any, reason: str):
        super().__init__(f"Invalid amount {amount!r}: {reason}")
        self.amount = amount
        self.reason = reason

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["amount"] = self.amount
        return data
