"""
Модуль контекста бронирования (Booking Context).

Отвечает за бронирование переговорных, включая:
- Проверку и создание бронирований (движок допуска)
- Отмену бронирований с учетом минимального срока
- Расчет сетки свободных слотов переговорной
"""

from . import domain, application, infrastructure, interfaces

__all__ = [
    'domain',
    'application',
    'infrastructure',
    'interfaces',
]
