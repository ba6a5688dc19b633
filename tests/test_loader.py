import asyncio

import pytest

from practice_core.errors import BootstrapError
from practice_core.schemas import RuntimeState
from sandbox.loader import RuntimeLoader


def test_concurrent_callers_share_one_bootstrap(fake_factory):
    fake_factory.start_delay = 0.01

    async def scenario():
        loader = RuntimeLoader(factory=fake_factory)
        runtimes = await asyncio.gather(*(loader.get_runtime() for _ in range(5)))
        return loader, runtimes

    loader, runtimes = asyncio.run(scenario())

    assert len(fake_factory.created) == 1
    assert all(runtime is runtimes[0] for runtime in runtimes)
    assert loader.status.bootstrap_attempts == 1
    assert loader.state is RuntimeState.READY


def test_ready_runtime_is_returned_without_new_attempt(fake_factory):
    async def scenario():
        loader = RuntimeLoader(factory=fake_factory)
        first = await loader.get_runtime()
        second = await loader.get_runtime()
        return loader, first, second

    loader, first, second = asyncio.run(scenario())

    assert first is second
    assert loader.status.bootstrap_attempts == 1


def test_bootstrap_installs_redirect(fake_factory):
    async def scenario():
        return await RuntimeLoader(factory=fake_factory).get_runtime()

    runtime = asyncio.run(scenario())
    assert runtime.started is True
    assert runtime.redirected is True


def test_status_reports_loading_while_in_flight(fake_factory):
    fake_factory.start_delay = 0.05

    async def scenario():
        loader = RuntimeLoader(factory=fake_factory)
        task = asyncio.create_task(loader.get_runtime())
        await asyncio.sleep(0)
        during = loader.status
        _ = await task
        return during, loader.status

    during, after = asyncio.run(scenario())

    assert during.state is RuntimeState.LOADING
    assert during.is_loading is True
    assert during.is_loaded is False
    assert after.is_loaded is True
    assert after.is_loading is False


def test_concurrent_callers_share_the_same_failure(fake_factory):
    fake_factory.start_delay = 0.01
    fake_factory.start_error = BootstrapError("Failed to load interpreter script")

    async def scenario():
        loader = RuntimeLoader(factory=fake_factory)
        results = await asyncio.gather(
            *(loader.get_runtime() for _ in range(3)),
            return_exceptions=True,
        )
        return loader, results

    loader, results = asyncio.run(scenario())

    assert len(fake_factory.created) == 1
    assert all(isinstance(result, BootstrapError) for result in results)
    assert loader.state is RuntimeState.FAILED
    assert loader.status.error == "Failed to load interpreter script"
    assert fake_factory.created[0].terminated is True


def test_failed_bootstrap_can_be_retried(fake_factory):
    fake_factory.start_error = BootstrapError("network down")

    async def scenario():
        loader = RuntimeLoader(factory=fake_factory)
        with pytest.raises(BootstrapError):
            _ = await loader.get_runtime()
        fake_factory.start_error = None
        runtime = await loader.get_runtime()
        return loader, runtime

    loader, runtime = asyncio.run(scenario())

    assert runtime is fake_factory.created[1]
    assert loader.state is RuntimeState.READY
    assert loader.status.bootstrap_attempts == 2
    assert loader.status.error is None


def test_unexpected_start_errors_become_bootstrap_errors(fake_factory):
    fake_factory.start_error = OSError("exec format error")

    async def scenario():
        loader = RuntimeLoader(factory=fake_factory)
        with pytest.raises(BootstrapError, match="exec format error"):
            _ = await loader.get_runtime()

    asyncio.run(scenario())


def test_load_records_error_instead_of_raising(fake_factory):
    fake_factory.start_error = BootstrapError("interpreter missing")

    async def scenario():
        loader = RuntimeLoader(factory=fake_factory)
        await loader.load()
        return loader.status

    status = asyncio.run(scenario())

    assert status.is_loaded is False
    assert status.is_loading is False
    assert status.error == "interpreter missing"


def test_discard_terminates_and_next_call_bootstraps_again(fake_factory):
    async def scenario():
        loader = RuntimeLoader(factory=fake_factory)
        first = await loader.get_runtime()
        await loader.discard()
        state_after_discard = loader.state
        second = await loader.get_runtime()
        return first, second, state_after_discard

    first, second, state_after_discard = asyncio.run(scenario())

    assert state_after_discard is RuntimeState.NOT_STARTED
    assert first.terminated is True
    assert second is not first
    assert len(fake_factory.created) == 2


def test_context_manager_shuts_runtime_down(fake_factory):
    async def scenario():
        async with RuntimeLoader(factory=fake_factory) as loader:
            runtime = await loader.get_runtime()
        return loader, runtime

    loader, runtime = asyncio.run(scenario())
    assert runtime.terminated is True
    assert loader.state is RuntimeState.NOT_STARTED


def test_factory_failure_marks_failed_and_allows_retry(fake_factory):
    fake_factory.build_errors = [OSError("cannot build interpreter")]

    async def scenario():
        loader = RuntimeLoader(factory=fake_factory)
        with pytest.raises(BootstrapError, match="cannot build interpreter"):
            _ = await loader.get_runtime()
        failed = loader.status
        runtime = await loader.get_runtime()
        return loader, failed, runtime

    loader, failed, runtime = asyncio.run(scenario())

    assert failed.state is RuntimeState.FAILED
    assert failed.error == "cannot build interpreter"
    assert fake_factory.calls == 2
    assert runtime is fake_factory.created[0]
    assert loader.state is RuntimeState.READY


def test_dead_runtime_is_replaced_on_next_request(fake_factory):
    async def scenario():
        loader = RuntimeLoader(factory=fake_factory)
        first = await loader.get_runtime()
        first.terminated = True
        second = await loader.get_runtime()
        return loader, first, second

    loader, first, second = asyncio.run(scenario())

    assert second is not first
    assert second.is_alive is True
    assert loader.status.bootstrap_attempts == 2
