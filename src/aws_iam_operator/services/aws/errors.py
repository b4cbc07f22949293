"""Translation of botocore errors into the reconcile error taxonomy."""

from __future__ import annotations

from botocore.exceptions import BotoCoreError, ClientError

from ...exceptions import (
    RemoteAlreadyExistsError,
    RemoteConflictError,
    RemoteError,
    RemoteInvalidError,
    RemoteLimitExceededError,
    RemoteNotFoundError,
    RemoteTransientError,
)

_ALREADY_EXISTS = {"EntityAlreadyExists"}
_NOT_FOUND = {"NoSuchEntity"}
_LIMIT_EXCEEDED = {"LimitExceeded"}
_CONFLICT = {"DeleteConflict"}
_TRANSIENT = {
    "Throttling",
    "ThrottlingException",
    "RequestLimitExceeded",
    "ServiceFailure",
    "ServiceUnavailable",
    "InternalFailure",
    "RequestTimeout",
    "ConcurrentModification",
}
_INVALID = {
    "MalformedPolicyDocument",
    "InvalidInput",
    "ValidationError",
    "PasswordPolicyViolation",
    "UnmodifiableEntity",
    "PolicyNotAttachable",
    "InvalidParameterValue",
}


def error_code(error: ClientError) -> str:
    return error.response.get("Error", {}).get("Code", "")


def translate_client_error(error: Exception, operation: str = "") -> RemoteError:
    """Map a botocore error onto the remote error taxonomy.

    Args:
        error: ClientError or BotoCoreError raised by boto3
        operation: Name of the IAM operation for the message

    Returns:
        The matching RemoteError subclass instance
    """
    prefix = f"{operation}: " if operation else ""

    if isinstance(error, ClientError):
        code = error_code(error)
        message = error.response.get("Error", {}).get("Message", str(error))
        text = f"{prefix}{code}: {message}"
        if code in _ALREADY_EXISTS:
            return RemoteAlreadyExistsError(text, code)
        if code in _NOT_FOUND:
            return RemoteNotFoundError(text, code)
        if code in _LIMIT_EXCEEDED:
            return RemoteLimitExceededError(text, code)
        if code in _CONFLICT:
            return RemoteConflictError(text, code)
        if code in _TRANSIENT:
            return RemoteTransientError(text, code)
        if code in _INVALID:
            return RemoteInvalidError(text, code)
        return RemoteError(text, code)

    if isinstance(error, BotoCoreError):
        return RemoteTransientError(f"{prefix}{error}")

    return RemoteError(f"{prefix}{error}")
