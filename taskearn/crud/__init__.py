"""TaskEarn CRUD facade.

======================================================================
Назначение модуля:
    • Экспортировать CRUD-классы для доменных таблиц TaskEarn (учётки,
      профили, задания, журнал кошелька, рефералы, push-подписки).
    • Не содержит бизнес-логики и не меняет балансы - только доступ к БД.

Канон/инварианты:
    • Денежные движения выполняются только в сервисах; CRUD не трогают
      балансы и не выполняют расчётов.
    • commit всегда делает вызывающий сервис.
======================================================================
"""

from taskearn.crud.notifications_crud import PushSubscriptionsCRUD
from taskearn.crud.referrals_crud import ReferralsCRUD
from taskearn.crud.tasks_crud import TasksCRUD
from taskearn.crud.transactions_crud import TransactionsCRUD
from taskearn.crud.user_crud import ProfileCRUD, UserCRUD

__all__ = [
    "ProfileCRUD",
    "PushSubscriptionsCRUD",
    "ReferralsCRUD",
    "TasksCRUD",
    "TransactionsCRUD",
    "UserCRUD",
]

# ======================================================================
# Пояснения «для чайника»:
#   • Здесь только экспорты CRUD-классов - деньги не двигаются.
#   • Каждая CRUD-обёртка работает с переданной AsyncSession.
# ======================================================================
