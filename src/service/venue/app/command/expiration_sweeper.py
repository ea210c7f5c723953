from typing import Optional

import anyio

from src.platform.exception.exceptions import InvalidTransitionError
from src.platform.logging.loguru_io import Logger
from src.platform.types.clock import Clock
from src.service.venue.app.command.order_state_machine import OrderStateMachine
from src.service.venue.app.dto.sweep_result import SweepResult
from src.service.venue.app.interface.i_order_query_repo import IOrderQueryRepo


EXPIRED_CANCEL_REASON = 'Order expired without payment'


class ExpirationSweeper:
    """
    Active half of order expiry (pay_order enforces the lazy half).

    Each pass cancels PENDING orders whose payment deadline has passed. Every
    candidate is re-checked under its order lock, so an order paid after the
    listing is skipped. Passes are single-flight: a pass requested
    while another is running is skipped, not queued.
    """

    def __init__(
        self,
        *,
        order_query_repo: IOrderQueryRepo,
        order_state_machine: OrderStateMachine,
        clock: Clock,
        interval_seconds: float = 60.0,
        batch_size: Optional[int] = None,
    ) -> None:
        self.order_query_repo = order_query_repo
        self.order_state_machine = order_state_machine
        self.clock = clock
        self.interval_seconds = interval_seconds
        self.batch_size = batch_size
        self._pass_lock = anyio.Lock()

    @property
    def is_running(self) -> bool:
        return self._pass_lock.locked()

    async def run_once(self) -> Optional[SweepResult]:
        """
        Returns:
            SweepResult of the pass, or None if skipped because a pass is in flight

        Raises:
            Whatever listing expired orders raises; per-order failures are isolated
        """
        try:
            self._pass_lock.acquire_nowait()
        except anyio.WouldBlock:
            Logger.base.info('⏭️ [SWEEPER] Previous pass still running, skipping')
            return None

        try:
            return await self._sweep()
        finally:
            self._pass_lock.release()

    async def _sweep(self) -> SweepResult:
        now = self.clock.now()
        expired_orders = await self.order_query_repo.list_expired_pending(
            now=now, limit=self.batch_size
        )
        result = SweepResult(scanned=len(expired_orders))

        for order in expired_orders:
            try:
                await self.order_state_machine.expire_order(
                    order_id=order.id, reason=EXPIRED_CANCEL_REASON
                )
                result.cancelled += 1
            except InvalidTransitionError as e:
                # Paid or cancelled between listing and cancelling
                result.skipped += 1
                Logger.base.info(f'⏭️ [SWEEPER] Skipped {order.order_number}: {e}')
            except Exception as e:
                result.failed += 1
                Logger.base.error(
                    f'❌ [SWEEPER] Failed to expire {order.order_number}: {type(e).__name__}: {e}'
                )

        if result.scanned:
            Logger.base.info(
                f'🧹 [SWEEPER] Pass done: scanned={result.scanned}, cancelled={result.cancelled}, '
                f'skipped={result.skipped}, failed={result.failed}'
            )
        return result

    async def run_forever(self) -> None:
        """Sweep every interval_seconds until cancelled; a failed pass is retried next tick"""
        Logger.base.info(f'🚀 [SWEEPER] Started (interval={self.interval_seconds}s)')
        while True:
            try:
                await self.run_once()
            except Exception as e:
                Logger.base.exception(f'❌ [SWEEPER] Pass failed, retrying next tick: {e}')
            await anyio.sleep(self.interval_seconds)
