"""
Standalone Expiration Sweeper Entry Point

Usage:
    PYTHONPATH=$PWD python src/service/venue/driving_adapter/start_expiration_sweeper.py
"""

import signal

import anyio

from src.platform.config.core_setting import settings
from src.platform.config.di import container
from src.platform.logging.loguru_io import Logger
from src.platform.state.redis_client import redis_client


async def _watch_signals(cancel_scope: anyio.CancelScope) -> None:
    with anyio.open_signal_receiver(signal.SIGINT, signal.SIGTERM) as signals:
        async for signum in signals:
            Logger.base.info(f'🛑 [Standalone Sweeper] Received signal {signum}')
            cancel_scope.cancel()
            return


async def run() -> None:
    Logger.base.info('🚀 [Standalone Sweeper] Starting...')

    if settings.NOTIFICATION_QUEUE_BACKEND == 'redis':
        await redis_client.initialize()
        Logger.base.info('📡 [Standalone Sweeper] Redis initialized')

    sweeper = container.expiration_sweeper()
    try:
        async with anyio.create_task_group() as tg:
            tg.start_soon(_watch_signals, tg.cancel_scope)
            tg.start_soon(sweeper.run_forever)
    finally:
        await redis_client.disconnect()
        Logger.base.info('✅ [Standalone Sweeper] Stopped')


def main() -> None:
    anyio.run(run)


if __name__ == '__main__':
    main()
