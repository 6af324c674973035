from decimal import Decimal


class LedgerError(Exception):
    """Base class for wallet ledger failures that callers are expected to handle."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_detail(self) -> dict:
        return {"detail": self.message}


class WalletNotFound(LedgerError):
    """The user has no wallet. Wallets are provisioned at registration, so this is an upstream bug."""

    status_code = 404

    def __init__(self, user_id: int):
        super().__init__("Wallet not found")
        self.user_id = user_id


class InsufficientBalance(LedgerError):
    status_code = 403

    def __init__(self, required: Decimal, available: Decimal):
        self.required = Decimal(required)
        self.available = Decimal(available)
        self.shortfall = max(Decimal("0"), self.required - self.available)
        super().__init__(
            f"Insufficient wallet balance. Need ${self.required:.2f} deposit, you have ${self.available:.2f}."
        )

    def to_detail(self) -> dict:
        return {
            "detail": self.message,
            "required": str(self.required),
            "available": str(self.available),
            "shortfall": str(self.shortfall),
        }


class InvalidAmount(LedgerError):
    def __init__(self, amount):
        super().__init__("Amount must be greater than zero")
        self.amount = amount


class BidNotFound(LedgerError):
    status_code = 404

    def __init__(self, bid_id: int):
        super().__init__("Bid not found")
        self.bid_id = bid_id


class DepositAlreadyLocked(LedgerError):
    status_code = 409

    def __init__(self, bid_id: int):
        super().__init__("Deposit already locked for this bid")
        self.bid_id = bid_id


class DepositForfeited(LedgerError):
    status_code = 409

    def __init__(self, bid_id: int):
        super().__init__("Deposit for this bid has been forfeited")
        self.bid_id = bid_id


class SignupFeeRequired(LedgerError):
    status_code = 403

    def __init__(self):
        super().__init__("Please pay the signup fee to start bidding")


class LockedBalanceMismatch(LedgerError):
    """Wallet locked balance is below the deposit a bid claims to hold."""

    status_code = 409

    def __init__(self, bid_id: int):
        super().__init__("Locked balance does not cover the bid deposit")
        self.bid_id = bid_id


class InvalidBidState(LedgerError):
    status_code = 409

    def __init__(self, bid_id: int, message: str):
        super().__init__(message)
        self.bid_id = bid_id
