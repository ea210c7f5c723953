"""
Transition side effects

Counter updates that accompany an order transition. Each effect is
idempotent under its key (f'{order_id}:{transition}:{effect}') and can be
reverted, so the state machine can undo applied effects when a later
effect or the versioned order write fails.
"""

from decimal import Decimal
from typing import Awaitable, Callable, List, Optional

import attrs
from uuid_utils import UUID

from src.platform.logging.loguru_io import Logger
from src.service.venue.app.interface.i_customer_repo import ICustomerRepo
from src.service.venue.app.interface.i_room_repo import IRoomRepo
from src.service.venue.app.interface.i_store_repo import IStoreRepo
from src.service.venue.domain.entity.order_entity import Order
from src.service.venue.domain.enum.order_status import PaymentMethod


@attrs.define(frozen=True)
class SideEffect:
    key: str
    apply: Callable[[], Awaitable[bool]]
    revert: Callable[[], Awaitable[bool]]


@attrs.define(frozen=True)
class RefundRequest:
    """Refund submitted to the external provider after all local effects applied"""

    order_id: UUID
    order_number: str
    amount: Decimal
    method: PaymentMethod
    transaction_id: str
    idempotency_key: str


class SideEffectBatch:
    def __init__(self) -> None:
        self._applied: List[SideEffect] = []

    async def apply(self, effect: SideEffect) -> None:
        if await effect.apply():
            self._applied.append(effect)
        else:
            Logger.base.info(f'♻️ [EFFECT] {effect.key} already applied, skipping')

    async def rollback(self) -> None:
        """Revert applied effects in reverse order; revert errors are logged, not raised"""
        while self._applied:
            effect = self._applied.pop()
            try:
                await effect.revert()
                Logger.base.warning(f'↩️ [EFFECT] Reverted {effect.key}')
            except Exception as e:
                Logger.base.exception(f'❌ [EFFECT] Failed to revert {effect.key}: {e}')

    @property
    def applied_keys(self) -> List[str]:
        return [effect.key for effect in self._applied]


def effect_key(order: Order, transition: str, effect: str) -> str:
    return f'{order.id}:{transition}:{effect}'


class OrderSideEffects:
    def __init__(
        self, *, customer_repo: ICustomerRepo, store_repo: IStoreRepo, room_repo: IRoomRepo
    ) -> None:
        self.customer_repo = customer_repo
        self.store_repo = store_repo
        self.room_repo = room_repo

    def _customer_effect(
        self, key: str, apply: Callable[[], Awaitable[bool]]
    ) -> SideEffect:
        return SideEffect(
            key=key, apply=apply, revert=lambda: self.customer_repo.revert(idempotency_key=key)
        )

    def _store_effect(self, key: str, apply: Callable[[], Awaitable[bool]]) -> SideEffect:
        return SideEffect(
            key=key, apply=apply, revert=lambda: self.store_repo.revert(idempotency_key=key)
        )

    def for_payment(self, *, order: Order) -> List[SideEffect]:
        """Balance debit (balance payments), customer total_spent, store revenue"""
        amount = order.actual_amount
        effects: List[SideEffect] = []

        payment = order.payment_info
        if payment is not None and payment.method == PaymentMethod.BALANCE:
            key = effect_key(order, 'pay', 'balance_debit')
            effects.append(
                self._customer_effect(
                    key,
                    lambda: self.customer_repo.add_balance(
                        customer_id=order.user_id, amount=-amount, idempotency_key=key
                    ),
                )
            )

        spent_key = effect_key(order, 'pay', 'total_spent')
        revenue_key = effect_key(order, 'pay', 'store_revenue')
        effects.append(
            self._customer_effect(
                spent_key,
                lambda: self.customer_repo.add_total_spent(
                    customer_id=order.user_id, amount=amount, idempotency_key=spent_key
                ),
            )
        )
        effects.append(
            self._store_effect(
                revenue_key,
                lambda: self.store_repo.add_revenue(
                    store_id=order.store_id, amount=amount, idempotency_key=revenue_key
                ),
            )
        )
        return effects

    def for_completion(self, *, order: Order, points: int) -> List[SideEffect]:
        """Store settled revenue, room revenue/booking_count, loyalty points"""
        amount = order.actual_amount
        settled_key = effect_key(order, 'complete', 'store_settled')
        effects = [
            self._store_effect(
                settled_key,
                lambda: self.store_repo.add_settled_revenue(
                    store_id=order.store_id, amount=amount, idempotency_key=settled_key
                ),
            )
        ]

        if order.room_id is not None:
            room_id = order.room_id
            room_key = effect_key(order, 'complete', 'room_revenue')
            effects.append(
                SideEffect(
                    key=room_key,
                    apply=lambda: self.room_repo.add_revenue(
                        room_id=room_id, amount=amount, idempotency_key=room_key
                    ),
                    revert=lambda: self.room_repo.revert(idempotency_key=room_key),
                )
            )

        if points > 0:
            points_key = effect_key(order, 'complete', 'points')
            effects.append(
                self._customer_effect(
                    points_key,
                    lambda: self.customer_repo.add_points(
                        customer_id=order.user_id, points=points, idempotency_key=points_key
                    ),
                )
            )
        return effects

    def for_refund(
        self, *, order: Order, amount: Decimal, transition: str
    ) -> tuple[List[SideEffect], Optional[RefundRequest]]:
        """
        Reverse paid receipts by the refunded amount and return the money

        Balance payments are credited back locally; other methods produce a
        RefundRequest for the external provider.
        """
        payment = order.payment_info
        assert payment is not None, 'Only paid orders can be refunded'

        spent_key = effect_key(order, transition, 'total_spent_refund')
        revenue_key = effect_key(order, transition, 'store_revenue_refund')
        effects = [
            self._customer_effect(
                spent_key,
                lambda: self.customer_repo.add_total_spent(
                    customer_id=order.user_id, amount=-amount, idempotency_key=spent_key
                ),
            ),
            self._store_effect(
                revenue_key,
                lambda: self.store_repo.add_revenue(
                    store_id=order.store_id, amount=-amount, idempotency_key=revenue_key
                ),
            ),
        ]

        if payment.method == PaymentMethod.BALANCE:
            balance_key = effect_key(order, transition, 'balance_refund')
            effects.append(
                self._customer_effect(
                    balance_key,
                    lambda: self.customer_repo.add_balance(
                        customer_id=order.user_id, amount=amount, idempotency_key=balance_key
                    ),
                )
            )
            return effects, None

        return effects, RefundRequest(
            order_id=order.id,
            order_number=order.order_number,
            amount=amount,
            method=payment.method,
            transaction_id=payment.transaction_id,
            idempotency_key=effect_key(order, transition, 'provider_refund'),
        )
