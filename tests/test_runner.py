"""Tests for the serial reconcile driver."""

from azure.core.exceptions import HttpResponseError

from azreconcile.dnszone import DNSZone
from azreconcile.recordset import RecordSet
from azreconcile.runner import order_tasks, reconcile
from azreconcile.securitygroups import ApplicationSecurityGroup, NetworkSecurityGroup
from azreconcile.securityrule import SecurityGroupRule
from azreconcile.tasks import DeltaOutcome

from azure_fake import FakeAzure

RG = "rg-cluster"


def desired_tasks() -> list:
    return [
        RecordSet(name="api", resource_group=RG, dns_zone="example.com", rrdatas=("10.0.0.4",)),
        SecurityGroupRule(
            name="allow-https",
            resource_group=RG,
            network_security_group="nsg-cluster",
            priority=200,
            protocol="Tcp",
            egress=False,
            destination_port_range="443",
            destination_application_security_groups=("asg-masters",),
        ),
        NetworkSecurityGroup(name="nsg-cluster", resource_group=RG),
        ApplicationSecurityGroup(name="asg-masters", resource_group=RG),
        DNSZone(name="example.com", resource_group=RG, private=False),
    ]


class TestOrderTasks:
    """Tests for order_tasks."""

    def test_referenced_kinds_first(self) -> None:
        """Test that tasks are sorted so referenced resources come first."""
        ordered = order_tasks(desired_tasks())

        assert [t.KIND for t in ordered] == [
            "DNSZone",
            "ApplicationSecurityGroup",
            "NetworkSecurityGroup",
            "SecurityGroupRule",
            "RecordSet",
        ]

    def test_stable_within_kind(self) -> None:
        """Test that declaration order is kept within a kind."""
        tasks = [DNSZone(name="b.com"), DNSZone(name="a.com")]

        assert [t.name for t in order_tasks(tasks)] == ["b.com", "a.com"]


class TestReconcile:
    """Tests for reconcile."""

    def test_full_pass_creates_everything(self, azure: FakeAzure) -> None:
        """Test that one pass creates every resource in dependency order."""
        result = reconcile(desired_tasks(), azure.cloud)

        assert result.success
        assert [r.outcome for r in result.results] == [DeltaOutcome.CREATED] * 5
        assert azure.dns.zone(RG, "example.com").records[("api", "A")]
        assert "allow-https" in [
            r.name for r in azure.network.nsgs[(RG, "nsg-cluster")].security_rules
        ]
        assert result.end_time is not None
        assert result.duration_seconds >= 0

    def test_second_pass_is_unchanged(self, azure: FakeAzure) -> None:
        """Test that a converged topology makes no mutations."""
        reconcile(desired_tasks(), azure.cloud)
        azure.state.reset_calls()

        result = reconcile(desired_tasks(), azure.cloud)

        assert result.success
        assert result.changes == []
        assert azure.state.mutating_calls() == []

    def test_dry_run_mutates_nothing(self, azure: FakeAzure) -> None:
        """Test that a dry run plans every create without any mutation."""
        result = reconcile(desired_tasks(), azure.cloud, dry_run=True)

        assert result.success
        assert result.dry_run
        assert [r.outcome for r in result.results] == [DeltaOutcome.WOULD_CREATE] * 5
        assert azure.state.mutating_calls() == []

    def test_failed_zone_skips_its_records(self, azure: FakeAzure) -> None:
        """Test that records of a failed zone are skipped and the rest continues."""
        azure.state.fail("dns.zones.create_or_update", HttpResponseError(message="quota"))

        result = reconcile(desired_tasks(), azure.cloud)

        assert not result.success
        outcomes = {r.key: r for r in result.results}
        assert outcomes[("DNSZone", "example.com")].error is not None
        assert outcomes[("RecordSet", "api")].skipped_because == ("DNSZone", "example.com")
        assert outcomes[("NetworkSecurityGroup", "nsg-cluster")].outcome is DeltaOutcome.CREATED
        assert (
            outcomes[("SecurityGroupRule", "nsg-cluster/allow-https")].outcome
            is DeltaOutcome.CREATED
        )
        assert len(result.failed) == 1
        assert len(result.skipped) == 1

    def test_failed_asg_skips_rules_referencing_it(self, azure: FakeAzure) -> None:
        """Test that rules referencing a failed application security group are skipped."""
        azure.state.fail(
            "network.application_security_groups.begin_create_or_update",
            HttpResponseError(message="denied"),
        )

        result = reconcile(desired_tasks(), azure.cloud)

        outcomes = {r.key: r for r in result.results}
        rule = outcomes[("SecurityGroupRule", "nsg-cluster/allow-https")]
        assert rule.skipped_because == ("ApplicationSecurityGroup", "asg-masters")
        assert outcomes[("RecordSet", "api")].outcome is DeltaOutcome.CREATED

    def test_zone_with_unknown_record_types(self, azure: FakeAzure) -> None:
        """Test that DS and unmodelled record types in a zone do not stop the pass."""
        azure.dns.add_zone(RG, "example.com")
        azure.dns.add_record(RG, "example.com", "@", "DS")
        azure.dns.add_record(RG, "example.com", "svc", "HTTPS")
        tasks = [
            RecordSet(name="www", resource_group=RG, dns_zone="example.com", rrdatas=("1.2.3.4",))
        ]

        result = reconcile(tasks, azure.cloud)

        assert result.success
        assert [r.outcome for r in result.results] == [DeltaOutcome.CREATED]

    def test_validation_error_recorded(self, azure: FakeAzure) -> None:
        """Test that an illegal change fails only that resource."""
        azure.dns.add_zone(RG, "example.com")
        tasks = [
            DNSZone(
                name="example.com",
                resource_group=RG,
                private=True,
                virtual_network_name="vnet-cluster",
            ),
            ApplicationSecurityGroup(name="asg-masters", resource_group=RG),
        ]

        result = reconcile(tasks, azure.cloud)

        assert [r.success for r in result.results] == [False, True]
        assert "private" in str(result.results[0].error)
