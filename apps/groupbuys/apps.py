from django.apps import AppConfig
from django.conf import settings


class GroupBuysConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'apps.groupbuys'
    label = 'groupbuys'
    verbose_name = 'Group buying'

    def ready(self):
        # One service per process, wired with its store and ledger
        from apps.rewards.services import RewardLedger
        from .services.group_store import GroupStore
        from .services.group_service import GroupService

        self.service = GroupService.from_settings(
            store=GroupStore(code_length=settings.GROUPBUY['CODE_LENGTH']),
            ledger=RewardLedger(),
        )
