"""Integration tests for the retention sweeper against the in-memory store."""

import asyncio
from datetime import timedelta

import pytest

from webapi.storage import (
    PartialSweepFailure,
    ResourceKind,
    RetentionSweeper,
    RetentionWindow,
    SweepState,
    TaggedObject,
)
from webapi.storage.exceptions import UpstreamUnavailable
from webapi.storage.memory import InMemoryGateway


class FlakyGateway(InMemoryGateway):
    """In-memory store whose deletes or listings can be made to fail."""

    def __init__(self, now, failing_ids=(), failing_kinds=()):
        super().__init__(now=now)
        self.failing_ids = set(failing_ids)
        self.failing_kinds = set(failing_kinds)
        self.delete_calls = []

    async def delete(self, public_id, resource_kind):
        self.delete_calls.append(public_id)
        if public_id in self.failing_ids:
            raise UpstreamUnavailable(f"Delete rejected for {public_id}")
        return await super().delete(public_id, resource_kind)

    async def list_by_tag(self, tag, resource_kind, cursor=None, max_results=500):
        if resource_kind in self.failing_kinds:
            raise UpstreamUnavailable(f"Listing {resource_kind.value} unavailable")
        return await super().list_by_tag(tag, resource_kind, cursor=cursor, max_results=max_results)


class RacedGateway(InMemoryGateway):
    """In-memory store where every delete finds the object already gone."""

    async def delete(self, public_id, resource_kind):
        await super().delete(public_id, resource_kind)
        return False


class BlockingGateway(InMemoryGateway):
    """In-memory store whose deletes wait until released."""

    def __init__(self, now):
        super().__init__(now=now)
        self.release = asyncio.Event()
        self.entered = asyncio.Event()
        self.delete_calls = []

    async def delete(self, public_id, resource_kind):
        self.delete_calls.append(public_id)
        self.entered.set()
        await self.release.wait()
        return await super().delete(public_id, resource_kind)


@pytest.fixture
def window():
    return RetentionWindow(ttl=timedelta(hours=1), scan_interval=timedelta(minutes=15))


def add(gateway, public_id, created_at, kind=ResourceKind.IMAGE):
    gateway.put(TaggedObject(
        public_id=public_id,
        resource_kind=kind,
        created_at=created_at,
        byte_size=10,
        tags=["temp_upload", "uploaded_0"],
    ))


class TestSweep:
    """Test a single sweep."""

    @pytest.mark.asyncio
    async def test_deletes_only_expired(self, memory_gateway, clock, window):
        add(memory_gateway, "old", clock.now() - timedelta(hours=2))
        add(memory_gateway, "new", clock.now() - timedelta(minutes=5))
        sweeper = RetentionSweeper(memory_gateway, window, clock=clock)

        report = await sweeper.run_sweep()

        assert report.deleted == 1
        assert report.attempted == 2
        assert not memory_gateway.contains("old", ResourceKind.IMAGE)
        assert memory_gateway.contains("new", ResourceKind.IMAGE)
        assert report.partial_failure is None

    @pytest.mark.asyncio
    async def test_per_kind_breakdown(self, memory_gateway, clock, window):
        add(memory_gateway, "old-image", clock.now() - timedelta(hours=2))
        add(memory_gateway, "old-raw", clock.now() - timedelta(hours=5), ResourceKind.RAW)
        add(memory_gateway, "new-raw", clock.now(), ResourceKind.RAW)
        sweeper = RetentionSweeper(memory_gateway, window, clock=clock)

        report = await sweeper.run_sweep()

        image = report.by_kind(ResourceKind.IMAGE)
        raw = report.by_kind(ResourceKind.RAW)
        assert (image.attempted, image.deleted) == (1, ["old-image"])
        assert (raw.attempted, raw.deleted) == (2, ["old-raw"])
        assert report.deleted == 2
        assert len(memory_gateway) == 1

    @pytest.mark.asyncio
    async def test_objects_age_into_expiry(self, memory_gateway, clock, window):
        add(memory_gateway, "aging", clock.now() - timedelta(minutes=50))
        sweeper = RetentionSweeper(memory_gateway, window, clock=clock)

        first = await sweeper.run_sweep()
        clock.advance(timedelta(minutes=15))
        second = await sweeper.run_sweep()

        assert first.deleted == 0
        assert second.deleted == 1

    @pytest.mark.asyncio
    async def test_deletion_failure_does_not_stop_sweep(self, clock, window):
        gateway = FlakyGateway(clock.now, failing_ids={"old-a"})
        add(gateway, "old-a", clock.now() - timedelta(hours=2))
        add(gateway, "old-b", clock.now() - timedelta(hours=2))
        sweeper = RetentionSweeper(gateway, window, clock=clock)

        report = await sweeper.run_sweep()

        assert gateway.delete_calls == ["old-a", "old-b"]
        assert report.deleted == 1
        assert not gateway.contains("old-b", ResourceKind.IMAGE)
        assert [failure.public_id for failure in report.failures] == ["old-a"]
        assert "Delete rejected" in report.failures[0].error

    @pytest.mark.asyncio
    async def test_already_deleted_object_not_counted_as_deleted(self, clock, window):
        gateway = RacedGateway(now=clock.now)
        add(gateway, "old", clock.now() - timedelta(hours=2))
        sweeper = RetentionSweeper(gateway, window, clock=clock)

        report = await sweeper.run_sweep()

        assert report.deleted == 0
        assert report.missing == 1
        assert report.by_kind(ResourceKind.IMAGE).missing == ["old"]
        assert report.to_dict()["missing"] == 1
        assert report.partial_failure is None

    @pytest.mark.asyncio
    async def test_partial_failure_is_reported_not_raised(self, clock, window):
        gateway = FlakyGateway(clock.now, failing_ids={"old-a"})
        add(gateway, "old-a", clock.now() - timedelta(hours=2))
        sweeper = RetentionSweeper(gateway, window, clock=clock)

        report = await sweeper.tick()

        failure = report.partial_failure
        assert isinstance(failure, PartialSweepFailure)
        assert failure.failures[0]["public_id"] == "old-a"
        with pytest.raises(PartialSweepFailure):
            report.raise_for_failures()

    @pytest.mark.asyncio
    async def test_listing_failure_isolated_to_its_kind(self, clock, window):
        gateway = FlakyGateway(clock.now, failing_kinds={ResourceKind.IMAGE})
        add(gateway, "old-image", clock.now() - timedelta(hours=2))
        add(gateway, "old-raw", clock.now() - timedelta(hours=2), ResourceKind.RAW)
        sweeper = RetentionSweeper(gateway, window, clock=clock)

        report = await sweeper.run_sweep()

        image = report.by_kind(ResourceKind.IMAGE)
        assert image.listing_error is not None
        assert image.deleted == []
        assert report.by_kind(ResourceKind.RAW).deleted == ["old-raw"]
        assert gateway.contains("old-image", ResourceKind.IMAGE)
        assert report.partial_failure is not None

    @pytest.mark.asyncio
    async def test_all_listings_failing_still_returns_report(self, clock, window):
        gateway = FlakyGateway(clock.now, failing_kinds={ResourceKind.IMAGE, ResourceKind.RAW})
        sweeper = RetentionSweeper(gateway, window, clock=clock)

        report = await sweeper.run_sweep()

        assert report.deleted == 0
        assert report.attempted == 0
        assert sweeper.state == SweepState.IDLE

    @pytest.mark.asyncio
    async def test_report_serializes(self, memory_gateway, clock, window):
        add(memory_gateway, "old", clock.now() - timedelta(hours=2))
        sweeper = RetentionSweeper(memory_gateway, window, clock=clock)

        data = (await sweeper.run_sweep()).to_dict()

        assert data["deleted"] == 1
        assert [kind["resource_kind"] for kind in data["kinds"]] == ["image", "raw"]
        assert sweeper.status()["last_report"]["deleted"] == 1


class TestSweepState:
    """Test the Idle/Sweeping gate."""

    @pytest.mark.asyncio
    async def test_tick_during_sweep_is_dropped(self, clock, window):
        gateway = BlockingGateway(clock.now)
        add(gateway, "old", clock.now() - timedelta(hours=2))
        sweeper = RetentionSweeper(gateway, window, clock=clock)

        first = asyncio.create_task(sweeper.tick())
        await asyncio.wait_for(gateway.entered.wait(), timeout=5)

        assert sweeper.state == SweepState.SWEEPING
        assert await sweeper.tick() is None
        assert await sweeper.run_sweep() is None
        assert sweeper.state == SweepState.SWEEPING

        gateway.release.set()
        report = await asyncio.wait_for(first, timeout=5)

        assert report.deleted == 1
        assert gateway.delete_calls == ["old"]
        assert sweeper.state == SweepState.IDLE

    @pytest.mark.asyncio
    async def test_state_resets_after_unexpected_error(self, memory_gateway, clock, window):
        sweeper = RetentionSweeper(memory_gateway, window, clock=clock)

        async def boom():
            raise RuntimeError("unexpected")

        sweeper._sweep = boom
        with pytest.raises(RuntimeError):
            await sweeper.tick()

        assert sweeper.state == SweepState.IDLE


class TestSweepLoop:
    """Test the background task."""

    @pytest.mark.asyncio
    async def test_start_runs_sweep_and_stop_ends_loop(self, memory_gateway, clock, window):
        add(memory_gateway, "old", clock.now() - timedelta(hours=2))
        sweeper = RetentionSweeper(memory_gateway, window, clock=clock)

        await sweeper.start()
        for _ in range(100):
            if sweeper.last_report is not None:
                break
            await asyncio.sleep(0.01)
        await sweeper.stop()

        assert sweeper.last_report.deleted == 1
        assert not sweeper.running
        assert sweeper.task is None

    @pytest.mark.asyncio
    async def test_start_twice_is_noop(self, memory_gateway, clock, window):
        sweeper = RetentionSweeper(memory_gateway, window, clock=clock)

        await sweeper.start()
        task = sweeper.task
        await sweeper.start()

        assert sweeper.task is task
        await sweeper.stop()

    @pytest.mark.asyncio
    async def test_loop_survives_failing_sweep(self, memory_gateway, clock):
        window = RetentionWindow(ttl=timedelta(hours=1), scan_interval=timedelta(milliseconds=10))
        sweeper = RetentionSweeper(memory_gateway, window, clock=clock)
        calls = []

        async def failing_tick():
            calls.append(1)
            raise RuntimeError("sweep crashed")

        sweeper.tick = failing_tick
        await sweeper.start()
        for _ in range(100):
            if len(calls) >= 2:
                break
            await asyncio.sleep(0.01)
        await sweeper.stop()

        assert len(calls) >= 2
