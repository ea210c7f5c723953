import anyio
import pytest

from src.platform.state.keyed_lock import KeyedLock


@pytest.mark.unit
class TestKeyedLock:
    @pytest.mark.asyncio
    async def test_same_key_is_serialized(self) -> None:
        """
        Given: Ten tasks incrementing a shared counter with a yield in between
        When: All hold the same key
        Then: No update is lost
        """
        locks = KeyedLock()
        counter = {'value': 0}

        async def bump() -> None:
            async with locks.hold(key='room:1'):
                current = counter['value']
                await anyio.sleep(0)
                counter['value'] = current + 1

        async with anyio.create_task_group() as tg:
            for _ in range(10):
                tg.start_soon(bump)

        assert counter['value'] == 10
        assert len(locks) == 0

    @pytest.mark.asyncio
    async def test_different_keys_run_concurrently(self) -> None:
        locks = KeyedLock()
        inside = anyio.Event()
        observed = []

        async def hold_a() -> None:
            async with locks.hold(key='room:a'):
                inside.set()
                await anyio.sleep(0.05)

        async def hold_b() -> None:
            await inside.wait()
            async with locks.hold(key='room:b'):
                observed.append(locks.is_locked(key='room:a'))

        with anyio.fail_after(1):
            async with anyio.create_task_group() as tg:
                tg.start_soon(hold_a)
                tg.start_soon(hold_b)

        assert observed == [True]

    @pytest.mark.asyncio
    async def test_lock_released_on_error(self) -> None:
        locks = KeyedLock()

        with pytest.raises(RuntimeError):
            async with locks.hold(key='order:1'):
                raise RuntimeError('boom')

        assert not locks.is_locked(key='order:1')
        assert len(locks) == 0

    @pytest.mark.asyncio
    async def test_holder_count_includes_waiters(self) -> None:
        locks = KeyedLock()
        inside = anyio.Event()
        release = anyio.Event()

        async def holder() -> None:
            async with locks.hold(key='order:1'):
                inside.set()
                await release.wait()

        async def waiter() -> None:
            async with locks.hold(key='order:1'):
                pass

        with anyio.fail_after(1):
            async with anyio.create_task_group() as tg:
                tg.start_soon(holder)
                await inside.wait()
                tg.start_soon(waiter)
                while locks.holder_count(key='order:1') < 2:
                    await anyio.sleep(0)
                assert locks.is_locked(key='order:1')
                release.set()

        assert locks.holder_count(key='order:1') == 0
