"""In-memory Azure management client fakes for testing.

The fakes implement just the DNS, private DNS and network operations the
adapters call, keep resources in memory, record every call in order and
can inject SDK exceptions per operation.

Usage:
    from azure_fake import FakeAzure

    azure = FakeAzure(config)
    azure.dns.add_zone(azure.resource_group, "example.com")
    azure.state.fail("dns.record_sets.delete", HttpResponseError("boom"))
"""

from .context import FakeAzure
from .credential import FakeCredential
from .dns import FakeDnsManagementClient, FakePrivateDnsManagementClient
from .network import FakeNetworkManagementClient
from .state import FakeAzureState, FakePoller

__all__ = [
    "FakeAzure",
    "FakeAzureState",
    "FakeCredential",
    "FakeDnsManagementClient",
    "FakeNetworkManagementClient",
    "FakePoller",
    "FakePrivateDnsManagementClient",
]
