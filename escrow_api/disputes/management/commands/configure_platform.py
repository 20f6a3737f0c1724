from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError
from django.db import transaction

from escrow import audit
from escrow.models import EscrowEvent, PlatformConfig
from escrow.validation import is_valid_address

User = get_user_model()


class Command(BaseCommand):
    help = "Bootstraps the platform configuration: appoints the arbitrator and optionally sets fee, wallet and token."

    def add_arguments(self, parser):
        parser.add_argument('--arbitrator', type=str, help='Email of the user who arbitrates disputes and administers the platform')
        parser.add_argument('--fee', type=int, help='Platform fee percentage')
        parser.add_argument('--wallet', type=str, help='Settlement account receiving platform fees')
        parser.add_argument('--token', type=str, help='Settlement token handle for token escrows')

    def handle(self, *args, **options):
        with transaction.atomic():
            config = PlatformConfig.load(for_update=True)

            email = options['arbitrator']
            if email:
                try:
                    config.arbitrator = User.objects.get(email=email)
                except User.DoesNotExist:
                    raise CommandError(f"User with email {email} does not exist.")
                self.stdout.write(self.style.SUCCESS(f"User {email} appointed arbitrator."))

            fee = options['fee']
            if fee is not None:
                if fee < 0 or fee > settings.MAX_PLATFORM_FEE_PERCENT:
                    raise CommandError(f"Fee must be between 0 and {settings.MAX_PLATFORM_FEE_PERCENT}.")
                config.fee_percent = fee
                audit.record(EscrowEvent.PLATFORM_FEE_UPDATED, actor=config.arbitrator, fee_percent=fee)

            for option, field, event in (
                ('wallet', 'platform_wallet', EscrowEvent.PLATFORM_WALLET_UPDATED),
                ('token', 'token', EscrowEvent.TOKEN_UPDATED),
            ):
                value = options[option]
                if value is None:
                    continue
                if not is_valid_address(value):
                    raise CommandError(f"Invalid {option}: {value!r}")
                setattr(config, field, value)
                audit.record(event, actor=config.arbitrator, **{option: value})

            config.save()

        self.stdout.write(self.style.SUCCESS(str(config)))
