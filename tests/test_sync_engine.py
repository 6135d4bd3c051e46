"""
Tests for the sync orchestrator.
"""

import pytest

from collection_sync.steam.client import MalformedResponseError, RemoteProtocolError
from collection_sync.steam.session import CookieSessionProvider
from collection_sync.sync.diff import Direction
from collection_sync.sync.engine import Mutation, SyncOrchestrator, SyncPhase

from conftest import FakeCollectionClient, collection, leaf


@pytest.fixture
def orchestrator(fake_client, session_provider) -> SyncOrchestrator:
    return SyncOrchestrator(client=fake_client, session_provider=session_provider)


class TestSync:
    """End-to-end runs against the in-memory client."""

    def test_adds_and_removes(self, orchestrator, fake_client: FakeCollectionClient):
        """Target {1, 2}, sources C1 {2} and C2 {3}."""
        result = orchestrator.sync("T", ["C1", "C2"])

        assert result.succeeded is True
        assert result.phase is SyncPhase.SUCCEEDED
        assert [(e.direction, e.item.id) for e in result.diff] == [
            (Direction.ADD, "3"),
            (Direction.REMOVE, "1"),
        ]
        assert fake_client.add_calls == [("T", "3", "abc123session")]
        assert fake_client.remove_calls == [("T", "1", "abc123session")]
        assert result.added == ["3"]
        assert result.removed == ["1"]

    def test_in_sync_makes_no_mutations(self, session_provider):
        client = FakeCollectionClient({
            "T": [leaf("1"), leaf("2")],
            "C1": [leaf("2", 5)],
            "C2": [leaf("1", 9)],
        })

        result = SyncOrchestrator(client, session_provider).sync("T", ["C1", "C2"])

        assert result.succeeded is True
        assert result.diff == []
        assert result.dispatched == []
        assert client.add_calls == []
        assert client.remove_calls == []

    def test_one_mutation_per_diff_entry(self, session_provider):
        client = FakeCollectionClient({
            "T": [leaf(str(i)) for i in range(10)],
            "S": [leaf(str(i)) for i in range(5, 20)],
        })

        result = SyncOrchestrator(client, session_provider, max_workers=4).sync("T", ["S"])

        assert sorted(item for _, item, _ in client.add_calls) == sorted(str(i) for i in range(10, 20))
        assert sorted(item for _, item, _ in client.remove_calls) == sorted(str(i) for i in range(5))
        assert len(result.dispatched) == len(result.diff) == 15
        assert len(result.applied) == 15

    def test_item_in_several_sources_added_once(self, session_provider):
        client = FakeCollectionClient({
            "T": [],
            "C1": [leaf("3")],
            "C2": [leaf("3"), leaf("4")],
        })

        SyncOrchestrator(client, session_provider).sync("T", ["C1", "C2"])

        assert sorted(item for _, item, _ in client.add_calls) == ["3", "4"]

    def test_nested_sources_are_expanded(self, nested_graph, session_provider):
        client = FakeCollectionClient({**nested_graph, "T": [leaf("4")]})

        result = SyncOrchestrator(client, session_provider).sync("T", ["C1", "C2"])

        assert sorted(result.added) == ["5", "6", "7"]
        assert result.removed == []
        assert client.fetched_ids.count("C3") == 1

    def test_target_and_sources_do_not_share_visited_state(self, session_provider):
        """A nested collection under both target and sources is read by both."""
        client = FakeCollectionClient({
            "T": [collection("N")],
            "S": [collection("N")],
            "N": [leaf("1"), leaf("2")],
        })

        result = SyncOrchestrator(client, session_provider).sync("T", ["S"])

        assert result.diff == []
        assert client.fetched_ids.count("N") == 2

    def test_rerun_after_success_is_noop(self, orchestrator, fake_client: FakeCollectionClient):
        orchestrator.sync("T", ["C1", "C2"])
        second = orchestrator.sync("T", ["C1", "C2"])

        assert second.succeeded is True
        assert second.diff == []
        assert len(fake_client.add_calls) == 1
        assert len(fake_client.remove_calls) == 1

    def test_session_id_comes_from_provider(self, fake_client: FakeCollectionClient):
        provider = CookieSessionProvider("sessionid=fromcookie; other=x")

        SyncOrchestrator(fake_client, provider).sync("T", ["C1", "C2"])

        assert fake_client.add_calls == [("T", "3", "fromcookie")]

    def test_session_id_requested_per_mutation(self, fake_client: FakeCollectionClient):
        """A provider that rotates its session ID is asked once per call."""
        issued = iter(["sid-1", "sid-2", "sid-3"])

        class RotatingProvider:
            def current_session_id(self):
                return next(issued)

        SyncOrchestrator(fake_client, RotatingProvider(), max_workers=1).sync("T", ["C1", "C2"])

        used = sorted(sid for _, _, sid in fake_client.add_calls + fake_client.remove_calls)
        assert used == ["sid-1", "sid-2"]


class TestSyncFailures:
    """Failure handling during fetch and apply."""

    def test_failed_removal_reported_without_rollback(self, orchestrator, fake_client: FakeCollectionClient):
        fake_client.failing_removals.add("1")

        result = orchestrator.sync("T", ["C1", "C2"])

        assert result.succeeded is False
        assert result.phase is SyncPhase.FAILED
        assert isinstance(result.error, RemoteProtocolError)
        assert result.error.identifier == "1"
        assert result.failed == [Mutation("T", "1", Direction.REMOVE)]

        # The concurrent add went through and stays applied
        assert result.added == ["3"]
        assert "3" in {item.id for item in fake_client.graph["T"]}
        assert len(result.dispatched) == 2

        with pytest.raises(RemoteProtocolError):
            result.raise_for_error()

    def test_all_mutations_complete_despite_failure(self, session_provider):
        client = FakeCollectionClient({
            "T": [leaf("r1"), leaf("r2")],
            "S": [leaf("a1"), leaf("a2"), leaf("a3")],
        })
        client.failing_adds.add("a2")

        result = SyncOrchestrator(client, session_provider, max_workers=1).sync("T", ["S"])

        assert result.succeeded is False
        assert len(client.add_calls) + len(client.remove_calls) == 5
        assert sorted(result.added) == ["a1", "a3"]
        assert sorted(result.removed) == ["r1", "r2"]

    def test_rerun_after_partial_failure_only_retries_remaining(
        self, orchestrator, fake_client: FakeCollectionClient
    ):
        fake_client.failing_removals.add("1")
        orchestrator.sync("T", ["C1", "C2"])

        fake_client.failing_removals.clear()
        second = orchestrator.sync("T", ["C1", "C2"])

        assert second.succeeded is True
        assert [(e.direction, e.item.id) for e in second.diff] == [(Direction.REMOVE, "1")]
        assert len(fake_client.add_calls) == 1

    def test_expansion_failure_propagates(self, orchestrator, fake_client: FakeCollectionClient):
        fake_client.collection_status["C2"] = 9

        with pytest.raises(RemoteProtocolError) as exc_info:
            orchestrator.sync("T", ["C1", "C2"])

        assert exc_info.value.identifier == "C2"
        assert fake_client.add_calls == []
        assert fake_client.remove_calls == []

    def test_missing_target_propagates(self, orchestrator):
        with pytest.raises(RemoteProtocolError, match="missing"):
            orchestrator.sync("missing", ["C1"])

    def test_source_missing_from_response_dispatches_nothing(self, session_provider):
        """A source left out of a successful batch must not empty the target."""
        client = FakeCollectionClient({"T": [leaf("1"), leaf("2")], "S": [leaf("1"), leaf("2")]})
        client.omitted_collections.add("S")

        with pytest.raises(MalformedResponseError, match="omitted requested collection"):
            SyncOrchestrator(client, session_provider).sync("T", ["S"])

        assert client.add_calls == []
        assert client.remove_calls == []
        assert [item.id for item in client.graph["T"]] == ["1", "2"]


class TestDryRun:

    def test_dry_run_dispatches_nothing(self, fake_client: FakeCollectionClient, session_provider):
        result = SyncOrchestrator(fake_client, session_provider, dry_run=True).sync("T", ["C1", "C2"])

        assert result.succeeded is True
        assert len(result.diff) == 2
        assert result.dispatched == []
        assert fake_client.add_calls == []
        assert fake_client.remove_calls == []


class TestOrchestratorConfig:

    def test_rejects_zero_workers(self, fake_client, session_provider):
        with pytest.raises(ValueError, match="max_workers"):
            SyncOrchestrator(fake_client, session_provider, max_workers=0)
