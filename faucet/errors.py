"""Typed failures raised by faucet operations.

Each error carries a stable ``code`` (returned to HTTP clients) and the
status code the API answers with.
"""


class FaucetError(Exception):
    code = "faucet_error"
    status_code = 400
    default_message = "Faucet call failed"

    def __init__(self, message: str = ""):
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        return str(self)


class AlreadyInitialized(FaucetError):
    code = "already_initialized"
    status_code = 409
    default_message = "Already initialized"


class NotInitialized(FaucetError):
    code = "not_initialized"
    status_code = 409
    default_message = "The faucet is not initialized"


class SuffixMismatch(FaucetError):
    code = "suffix_mismatch"
    status_code = 400
    default_message = "Account has to end with the suffix"


class DuplicateAccount(FaucetError):
    code = "duplicate_account"
    status_code = 409
    default_message = "The given account is already created"


class ProofOfWorkTooWeak(FaucetError):
    code = "proof_of_work_too_weak"
    status_code = 400
    default_message = "The proof of work is too weak"


class Unauthorized(FaucetError):
    code = "unauthorized"
    status_code = 403
    default_message = "Can only be called by owner"
