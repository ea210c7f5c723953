from datetime import datetime, timedelta

from src.platform.exception.exceptions import ValidationError
from src.service.venue.domain.entity.order_entity import Order
from src.service.venue.domain.enum.order_status import CancelActor


class CancellationWindowPolicy:
    """
    Customers may not cancel a timed booking shortly before it starts.

    Applies only to user-initiated cancellation of orders with a start_time;
    merchants and the expiration sweeper are never restricted.
    """

    def __init__(self, *, enabled: bool = True, cancel_hours: int = 2, vip_cancel_hours: int = 1) -> None:
        self.enabled = enabled
        self.cancel_hours = cancel_hours
        self.vip_cancel_hours = vip_cancel_hours

    def window_for(self, *, is_vip: bool) -> timedelta:
        return timedelta(hours=self.vip_cancel_hours if is_vip else self.cancel_hours)

    def ensure_cancellable(
        self, *, order: Order, actor: CancelActor, is_vip: bool, now: datetime
    ) -> None:
        if not self.enabled or actor != CancelActor.USER or order.start_time is None:
            return

        window = self.window_for(is_vip=is_vip)
        if order.start_time - now < window:
            hours = int(window.total_seconds() // 3600)
            raise ValidationError(f'订单开始前{hours}小时内不可取消')
