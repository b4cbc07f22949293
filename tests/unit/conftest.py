"""Shared fixtures for unit tests."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

from aws_iam_operator.config import OperatorConfig
from aws_iam_operator.constants import FINALIZER
from fakes import ACCOUNT, InMemoryStore, make_iam


@pytest.fixture(autouse=True)
def no_kopf_events():
    """kopf.event needs a running operator; record calls instead."""
    with patch("kopf.event") as event:
        yield event


@pytest.fixture(autouse=True)
def no_rate_limit_delay():
    with patch("aws_iam_operator.utils.rate_limit._K8S_RATE_LIMIT_PER_SECOND", 1e9), patch(
        "aws_iam_operator.utils.rate_limit._IAM_RATE_LIMIT_PER_SECOND", 1e9
    ):
        yield


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def iam() -> MagicMock:
    return make_iam()


@pytest.fixture
def config() -> OperatorConfig:
    return OperatorConfig(
        oidc_provider_arn=f"arn:aws:iam::{ACCOUNT}:oidc-provider/oidc.eks.eu-west-1.amazonaws.com/id/ABC123",
    )


@pytest.fixture
def core_api() -> MagicMock:
    return MagicMock()


@pytest.fixture
def finalized() -> list[str]:
    return [FINALIZER]
