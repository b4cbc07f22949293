"""AWS IAM service access."""

from .arn import is_arn, kind_from_arn, name_from_arn
from .client import IAMService
from .errors import translate_client_error

__all__ = ["IAMService", "is_arn", "kind_from_arn", "name_from_arn", "translate_client_error"]
