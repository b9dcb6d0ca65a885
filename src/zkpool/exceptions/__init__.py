"""Custom exceptions for the ZK denomination pool."""


class ZKPoolException(Exception):
    """Base exception for all pool errors."""

    code = "PoolError"


# Field Errors
class FieldError(ZKPoolException):
    """Base exception for prime-field errors."""

    code = "FieldError"


class OutOfFieldError(FieldError):
    """Raised when a value is not below the field modulus."""

    code = "OutOfField"


# Merkle Tree Errors
class MerkleTreeError(ZKPoolException):
    """Base exception for Merkle tree errors."""

    code = "MerkleTreeError"


class CapacityExceededError(MerkleTreeError):
    """Raised when the tree already holds 2**levels leaves."""

    code = "CapacityExceeded"


class TreeTooDeepError(MerkleTreeError):
    """Raised at construction when levels exceeds the supported maximum."""

    code = "TreeTooDeep"


class InvalidLeafIndexError(MerkleTreeError):
    """Raised when leaf index is invalid."""

    code = "InvalidLeafIndex"


# Operation Errors
class DepositError(ZKPoolException):
    """Base exception for deposit errors."""

    code = "DepositError"


class WithdrawalError(ZKPoolException):
    """Base exception for withdrawal errors.

    ``reached_state`` is the last withdrawal state reached before the
    request was rejected, when known.
    """

    code = "WithdrawalError"

    def __init__(self, message: str = "", reached_state=None):
        super().__init__(message)
        self.reached_state = reached_state


class WrongDenominationError(DepositError):
    """Raised when the paid amount differs from the pool denomination."""

    code = "WrongDenomination"


class StaleOrUnknownRootError(WithdrawalError):
    """Raised when the root is not in the recent root history."""

    code = "StaleOrUnknownRoot"


class InvalidProofError(WithdrawalError):
    """Raised when proof verification fails."""

    code = "InvalidProof"


class PayoutFailedError(WithdrawalError):
    """Raised when the value transfer to the claimant fails."""

    code = "PayoutFailed"


# Double-Spend Errors
class DoubleSpendError(ZKPoolException):
    """Base exception for one-time-use violations."""

    code = "DoubleSpend"


class CommitmentReusedError(DoubleSpendError, DepositError):
    """Raised when a commitment has already been deposited."""

    code = "CommitmentReused"


class NullifierAlreadyUsedError(DoubleSpendError, WithdrawalError):
    """Raised when a nullifier hash has already been spent."""

    code = "NullifierAlreadyUsed"


class ReentrancyError(ZKPoolException):
    """Raised when a mutating call enters a pool that is already executing one."""

    code = "Reentrancy"


# Storage Errors
class StorageError(ZKPoolException):
    """Base exception for storage errors."""

    code = "StorageError"


class SerializationError(StorageError):
    """Raised when serialization fails."""

    code = "SerializationError"
