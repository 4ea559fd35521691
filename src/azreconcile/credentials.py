"""Credential acquisition for the Azure management clients.

A user-assigned managed identity is used when its client id is configured;
otherwise DefaultAzureCredential walks its usual chain (environment,
workload identity, managed identity, Azure CLI). Failing to obtain a token
is fatal: no reconciliation pass starts without a working credential.
"""

from __future__ import annotations

import logging

from azure.core.credentials import TokenCredential
from azure.core.exceptions import ClientAuthenticationError
from azure.identity import CredentialUnavailableError, DefaultAzureCredential, ManagedIdentityCredential

logger = logging.getLogger(__name__)

ARM_SCOPE = "https://management.azure.com/.default"


class CredentialError(Exception):
    """Raised when no usable Azure credential can be obtained.

    This is fatal; callers must not attempt a reconciliation pass.
    """

    pass


def get_credential(client_id: str | None = None) -> TokenCredential:
    """Get the credential used by every management client.

    Args:
        client_id: Client id of a user-assigned managed identity. If None,
                   DefaultAzureCredential is used.
    """
    if client_id:
        logger.info(
            "Using user-assigned managed identity",
            extra={"client_id": client_id[:8] + "..." if len(client_id) > 8 else client_id},
        )
        return ManagedIdentityCredential(client_id=client_id)

    logger.info("Using default Azure credential chain")
    return DefaultAzureCredential()


def verify_credential(credential: TokenCredential) -> None:
    """Acquire an ARM token to prove the credential works.

    Raises:
        CredentialError: If no token can be acquired.
    """
    try:
        credential.get_token(ARM_SCOPE)
    except (ClientAuthenticationError, CredentialUnavailableError) as e:
        logger.critical(
            "Failed to acquire Azure credential",
            extra={"error": str(e), "credential_type": type(credential).__name__},
        )
        raise CredentialError(f"Failed to acquire Azure credential: {e}") from e

    logger.info(
        "Azure credential verified",
        extra={"credential_type": type(credential).__name__},
    )
