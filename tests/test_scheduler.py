from __future__ import annotations

import asyncio
import logging
from datetime import timedelta
from pathlib import Path

import pytest

from gobuilder.build import BOOTSTRAP_VARIABLE
from gobuilder.config import BuilderSettings
from gobuilder.process import CommandFailedError, FakeCommandRunner
from gobuilder.scheduler import CycleReport, Scheduler, SchedulerState

DEVEL_ABCDEF1 = "go version devel +abcdef1 Mon Jan 1 00:00:00 2024 +0000 linux/amd64\n"


def _scheduler(tmp_path: Path, fake: FakeCommandRunner) -> Scheduler:
    settings = BuilderSettings(root=tmp_path, toolchain=tmp_path / "bootstrap")
    return Scheduler.from_settings(settings, fake)


def _go(tmp_path: Path) -> tuple[str, ...]:
    return (str(tmp_path / "bin" / "go"), "version")


def test_up_to_date_checkout_skips_build(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.INFO)
    fake = FakeCommandRunner({_go(tmp_path): DEVEL_ABCDEF1, ("git", "rev-parse"): "abcdef1\n"})

    report = asyncio.run(_scheduler(tmp_path, fake).run_cycle())

    assert report.update_needed is False
    assert not report.built
    assert fake.calls("/bin/bash") == []
    assert "no update needed" in caplog.text


def test_stale_checkout_builds_once(tmp_path: Path) -> None:
    fake = FakeCommandRunner({_go(tmp_path): DEVEL_ABCDEF1, ("git", "rev-parse"): "1234567\n"})

    report = asyncio.run(_scheduler(tmp_path, fake).run_cycle())

    assert report.update_needed is True
    assert report.built
    (build,) = fake.calls("/bin/bash", "make.bash")
    assert build.env is not None
    assert build.env[BOOTSTRAP_VARIABLE] == str(tmp_path / "bootstrap")


def test_cycle_order_is_pull_compare_build(tmp_path: Path) -> None:
    fake = FakeCommandRunner({_go(tmp_path): DEVEL_ABCDEF1, ("git", "rev-parse"): "1234567\n"})

    asyncio.run(_scheduler(tmp_path, fake).run_cycle())

    assert [call.args[:2] for call in fake.invocations] == [
        ("git", "pull"),
        _go(tmp_path),
        ("git", "rev-parse"),
        ("/bin/bash", "make.bash"),
    ]


def test_failed_pull_stops_before_comparison(tmp_path: Path) -> None:
    fake = FakeCommandRunner({("git", "pull"): 1, _go(tmp_path): DEVEL_ABCDEF1})

    with pytest.raises(CommandFailedError):
        asyncio.run(_scheduler(tmp_path, fake).run_cycle())

    assert [call.args for call in fake.invocations] == [("git", "pull")]


class VirtualTime:
    """Shared fake clock; ``sleep`` advances it instantly."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def clock(self) -> float:
        return self.now

    async def sleep(self, delay: float) -> None:
        self.sleeps.append(delay)
        self.now += delay


class TimedSynchronizer:
    def __init__(self, time: VirtualTime, durations: list[float]) -> None:
        self._time = time
        self._durations = durations
        self.started: list[float] = []
        self.active = False

    async def sync(self) -> timedelta:
        assert not self.active, "cycles overlapped"
        self.active = True
        self.started.append(self._time.now)
        duration = self._durations.pop(0) if self._durations else 0.0
        self._time.now += duration
        self.active = False
        return timedelta(seconds=duration)


class FixedComparator:
    def __init__(self, *answers: bool) -> None:
        self._answers = list(answers)
        self.calls = 0

    async def is_update_needed(self) -> bool:
        self.calls += 1
        return self._answers.pop(0) if self._answers else False


class CountingBuilder:
    def __init__(self) -> None:
        self.calls = 0

    async def build(self) -> timedelta:
        self.calls += 1
        return timedelta(seconds=1)


def _timed_scheduler(
    time: VirtualTime,
    synchronizer: TimedSynchronizer,
    comparator: FixedComparator | None = None,
    builder: CountingBuilder | None = None,
    interval: str = "30s",
) -> Scheduler:
    return Scheduler(
        BuilderSettings(update_rate=interval),
        synchronizer=synchronizer,  # type: ignore[arg-type]
        comparator=comparator or FixedComparator(),  # type: ignore[arg-type]
        builder=builder or CountingBuilder(),  # type: ignore[arg-type]
        clock=time.clock,
        sleep=time.sleep,
    )


def test_first_cycle_runs_immediately_then_on_interval() -> None:
    time = VirtualTime()
    synchronizer = TimedSynchronizer(time, [2.0, 2.0, 2.0])

    completed = asyncio.run(_timed_scheduler(time, synchronizer).run_forever(max_cycles=3))

    assert completed == 3
    assert synchronizer.started == [0.0, 32.0, 62.0]
    assert time.sleeps == [30.0, 28.0]


def test_overrunning_cycle_is_followed_immediately_without_overlap() -> None:
    time = VirtualTime()
    # Second cycle (started at t=30) runs for 75s, spanning the ticks at 60 and 90.
    synchronizer = TimedSynchronizer(time, [0.0, 75.0, 1.0, 1.0])

    asyncio.run(_timed_scheduler(time, synchronizer).run_forever(max_cycles=4))

    # The ticks at 60 and 90 collapse into one cycle at 105; the next waits for 120.
    assert synchronizer.started == [0.0, 30.0, 105.0, 120.0]


def test_build_only_follows_positive_comparison() -> None:
    time = VirtualTime()
    comparator = FixedComparator(False, True, False)
    builder = CountingBuilder()

    asyncio.run(
        _timed_scheduler(time, TimedSynchronizer(time, []), comparator, builder).run_forever(max_cycles=3)
    )

    assert comparator.calls == 3
    assert builder.calls == 1


def test_state_tracks_waiting_and_running() -> None:
    time = VirtualTime()
    states: list[SchedulerState] = []
    scheduler: Scheduler

    async def recording_sleep(delay: float) -> None:
        states.append(scheduler.state)
        await time.sleep(delay)

    scheduler = Scheduler(
        BuilderSettings(update_rate="10s"),
        synchronizer=TimedSynchronizer(time, []),  # type: ignore[arg-type]
        comparator=FixedComparator(),  # type: ignore[arg-type]
        builder=CountingBuilder(),  # type: ignore[arg-type]
        clock=time.clock,
        sleep=recording_sleep,
    )
    assert scheduler.state is SchedulerState.RUNNING_CYCLE

    asyncio.run(scheduler.run_forever(max_cycles=2))

    assert states == [SchedulerState.WAITING_FOR_TICK]
    assert scheduler.state is SchedulerState.RUNNING_CYCLE


def test_error_propagates_out_of_loop(tmp_path: Path) -> None:
    fake = FakeCommandRunner({("git", "pull"): 1})

    with pytest.raises(CommandFailedError):
        asyncio.run(_scheduler(tmp_path, fake).run_forever())


def test_cycle_report_built_flag() -> None:
    assert CycleReport(update_needed=True, sync_elapsed=timedelta(0), build_elapsed=timedelta(1)).built
    assert not CycleReport(update_needed=False, sync_elapsed=timedelta(0)).built
