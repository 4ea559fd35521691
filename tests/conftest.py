"""Pytest configuration and fixtures."""

import sys
from pathlib import Path

import pytest

# Add src to path for imports
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

# Add tests to path for azure_fake imports
tests_path = Path(__file__).parent
sys.path.insert(0, str(tests_path))

from azreconcile.config import Config  # noqa: E402

from azure_fake import FakeAzure  # noqa: E402

SUBSCRIPTION_ID = "12345678-1234-1234-1234-123456789012"
RESOURCE_GROUP = "rg-cluster"


@pytest.fixture
def config() -> Config:
    """Valid configuration without cluster tags."""
    return Config(
        subscription_id=SUBSCRIPTION_ID,
        resource_group_name=RESOURCE_GROUP,
        location="westeurope",
    )


@pytest.fixture
def cluster_config() -> Config:
    """Valid configuration with a cluster name, so cluster tags are merged."""
    return Config(
        subscription_id=SUBSCRIPTION_ID,
        resource_group_name=RESOURCE_GROUP,
        location="westeurope",
        cluster_name="k8s.example.com",
    )


@pytest.fixture
def azure(config: Config) -> FakeAzure:
    """Fake Azure environment for the default configuration."""
    return FakeAzure(config)
