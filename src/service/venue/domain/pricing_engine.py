from decimal import ROUND_FLOOR, Decimal
from typing import Optional, Sequence

from src.platform.exception.exceptions import ValidationError
from src.platform.logging.loguru_io import Logger
from src.service.venue.domain.value_object.money import ZERO, MoneyLike, to_money
from src.service.venue.domain.value_object.order_item import OrderItem, OrderItemInput
from src.service.venue.domain.value_object.price_breakdown import PriceBreakdown


class PricingEngine:
    """
    Order amount computation

    - line_total = round(unit_price × quantity, 2); subtotal = Σ line_total
    - deposit = room deposit when a room is booked and vip_level < deposit_exempt_level
    - discount = round(subtotal × min(vip_level × rate_per_level, max_rate), 2)
    - total_amount = subtotal + deposit; actual_amount = total_amount - discount

    Pure: no I/O, no clock.
    """

    def __init__(
        self,
        *,
        max_vip_level: int = 5,
        deposit_exempt_level: int = 3,
        discount_rate_per_level: Decimal = Decimal('0.02'),
        max_discount_rate: Decimal = Decimal('0.10'),
    ) -> None:
        self.max_vip_level = max_vip_level
        self.deposit_exempt_level = deposit_exempt_level
        self.discount_rate_per_level = Decimal(discount_rate_per_level)
        self.max_discount_rate = Decimal(max_discount_rate)

    def discount_rate(self, vip_level: int) -> Decimal:
        return min(vip_level * self.discount_rate_per_level, self.max_discount_rate)

    @Logger.io
    def price(
        self,
        *,
        items: Sequence[OrderItemInput],
        vip_level: int = 0,
        room_deposit: Optional[MoneyLike] = None,
    ) -> PriceBreakdown:
        if not 0 <= vip_level <= self.max_vip_level:
            raise ValidationError(f'vip_level must be between 0 and {self.max_vip_level}')

        priced_items = []
        for item in items:
            if item.quantity <= 0:
                raise ValidationError(f'Quantity of {item.name} must be positive')
            unit_price = to_money(item.unit_price)
            if unit_price < ZERO:
                raise ValidationError(f'Unit price of {item.name} must not be negative')
            priced_items.append(
                OrderItem(
                    dish_id=item.dish_id,
                    name=item.name,
                    unit_price=unit_price,
                    quantity=item.quantity,
                    line_total=to_money(unit_price * item.quantity),
                    specifications=item.specifications,
                )
            )

        subtotal = to_money(sum((item.line_total for item in priced_items), ZERO))

        deposit = ZERO
        if room_deposit is not None and vip_level < self.deposit_exempt_level:
            deposit = to_money(room_deposit)
            if deposit < ZERO:
                raise ValidationError('Room deposit must not be negative')

        discount = to_money(subtotal * self.discount_rate(vip_level))
        total_amount = subtotal + deposit

        return PriceBreakdown(
            items=priced_items,
            subtotal=subtotal,
            deposit=deposit,
            discount=discount,
            total_amount=total_amount,
            actual_amount=total_amount - discount,
        )


class LoyaltyPointsPolicy:
    """points = floor(actual_amount × ratio × (vip_multiplier if VIP else 1))"""

    def __init__(self, *, order_ratio: Decimal = Decimal('0.05'), vip_multiplier: int = 2) -> None:
        self.order_ratio = Decimal(order_ratio)
        self.vip_multiplier = vip_multiplier

    def points_for(self, *, amount: Decimal, is_vip: bool) -> int:
        multiplier = self.vip_multiplier if is_vip else 1
        points = (Decimal(amount) * self.order_ratio * multiplier).to_integral_value(
            rounding=ROUND_FLOOR
        )
        return max(int(points), 0)
