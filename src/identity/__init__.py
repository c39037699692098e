"""
Модуль контекста учетных записей (Identity Context).

Регистрирует пользователей и подтверждает их учетные данные;
для контекста бронирования служит поставщиком ID пользователя.
"""

from . import domain, application, infrastructure, interfaces

__all__ = [
    'domain',
    'application',
    'infrastructure',
    'interfaces',
]
