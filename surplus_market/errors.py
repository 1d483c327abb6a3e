"""
Типизированные ошибки ядра маркетплейса.

У каждой ошибки есть ErrorKind: вызывающий код может ловить по классу или
сравнивать err.kind. Отображение в транспортные ответы — забота слоя запросов.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    NOT_FOUND = "not_found"
    UNAUTHORIZED = "unauthorized"
    INVALID_INPUT = "invalid_input"
    INVALID_QUANTITY = "invalid_quantity"
    DUPLICATE_ENTRY = "duplicate_entry"
    INSUFFICIENT_STOCK = "insufficient_stock"
    NEGATIVE_STOCK = "negative_stock"
    INVALID_STATUS_TRANSITION = "invalid_status_transition"
    STORAGE_ERROR = "storage_error"


class MarketError(Exception):
    kind: ErrorKind
    default_message = "marketplace error"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message)

    @property
    def retryable(self) -> bool:
        return self.kind == ErrorKind.STORAGE_ERROR


class NotFoundError(MarketError):
    """Сущность не найдена."""

    kind = ErrorKind.NOT_FOUND
    default_message = "resource not found"


class UnauthorizedError(MarketError):
    """Пользователь не владеет ресурсом."""

    kind = ErrorKind.UNAUTHORIZED
    default_message = "unauthorized access"


class InvalidInputError(MarketError):
    kind = ErrorKind.INVALID_INPUT
    default_message = "invalid input"


class InvalidQuantityError(MarketError):
    kind = ErrorKind.INVALID_QUANTITY
    default_message = "quantity must be greater than zero"


class DuplicateEntryError(MarketError):
    """Запись с таким id уже есть."""

    kind = ErrorKind.DUPLICATE_ENTRY
    default_message = "duplicate entry"


class InsufficientStockError(MarketError):
    """Стока не хватает на заказ."""

    kind = ErrorKind.INSUFFICIENT_STOCK
    default_message = "insufficient stock available"


class NegativeStockError(MarketError):
    """Изменение увело бы stock ниже нуля."""

    kind = ErrorKind.NEGATIVE_STOCK
    default_message = "stock cannot be negative"


class InvalidStatusTransitionError(MarketError):
    kind = ErrorKind.INVALID_STATUS_TRANSITION
    default_message = "invalid status transition"


class StorageError(MarketError):
    """Сбой хранилища. Ничего не применено, запрос можно повторить."""

    kind = ErrorKind.STORAGE_ERROR
    default_message = "storage failure"
