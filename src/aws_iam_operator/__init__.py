"""AWS IAM Operator - converges declared IAM objects onto AWS."""

__version__ = "0.1.0"
