"""Доменные ошибки. Роутеры переводят их в HTTP-статусы, сервисы о HTTP не знают."""


class PhotodeskError(Exception):
    pass


class GalleryUnavailable(PhotodeskError):
    """Галерея не активна или истекла. Повтор не поможет."""


class NotFound(PhotodeskError):
    pass


class OrderNotFound(NotFound):
    pass


class NoChargeableItems(PhotodeskError):
    """В выборе нет дополнительных фото: платить не за что."""


class InvalidSignature(PhotodeskError):
    pass


class PaymentInitError(PhotodeskError):
    """Шлюз не зарегистрировал транзакцию. gateway_detail: сырой ответ для поддержки."""

    def __init__(self, message: str, gateway_detail: str | None = None):
        super().__init__(message)
        self.gateway_detail = gateway_detail


class StorageError(PhotodeskError):
    pass


class GatewayUnavailable(PhotodeskError):
    """Шлюз не ответил при серверной проверке. Заказ остаётся pending, шлюз повторит уведомление."""
