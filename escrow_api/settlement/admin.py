from django.contrib import admin
from .models import LedgerBalance, TokenAllowance, Transfer


@admin.register(LedgerBalance)
class LedgerBalanceAdmin(admin.ModelAdmin):
    list_display = ('id', 'account', 'asset', 'balance', 'updated_at')
    list_filter = ('asset',)
    search_fields = ('account',)


@admin.register(TokenAllowance)
class TokenAllowanceAdmin(admin.ModelAdmin):
    list_display = ('id', 'token', 'owner', 'spender', 'amount', 'updated_at')
    list_filter = ('token',)
    search_fields = ('owner', 'spender')


@admin.register(Transfer)
class TransferAdmin(admin.ModelAdmin):
    list_display = ('id', 'asset', 'sender', 'recipient', 'amount', 'reference', 'provider', 'timestamp')
    list_filter = ('provider', 'asset')
    search_fields = ('reference', 'sender', 'recipient')
    readonly_fields = ('asset', 'sender', 'recipient', 'amount', 'reference', 'provider', 'timestamp')
