from django.contrib import admin

from .models import Escrow, EscrowEvent, PlatformConfig


@admin.register(Escrow)
class EscrowAdmin(admin.ModelAdmin):
    list_display = ('id', 'client', 'freelancer', 'amount', 'settled_amount', 'status', 'deadline', 'is_token_escrow')
    list_filter = ('status', 'is_token_escrow')
    search_fields = ('id', 'client__email', 'freelancer__email')
    # state changes go through EscrowService only
    readonly_fields = [f.name for f in Escrow._meta.fields]


@admin.register(PlatformConfig)
class PlatformConfigAdmin(admin.ModelAdmin):
    list_display = ('id', 'fee_percent', 'platform_wallet', 'token', 'paused', 'arbitrator')
    readonly_fields = ('fee_percent', 'platform_wallet', 'token', 'paused', 'updated_at')


@admin.register(EscrowEvent)
class EscrowEventAdmin(admin.ModelAdmin):
    list_display = ('id', 'event', 'escrow_key', 'actor', 'amount', 'created_at')
    list_filter = ('event',)
    search_fields = ('escrow_key',)
    readonly_fields = ('event', 'escrow_key', 'actor', 'amount', 'data', 'created_at')

    def has_delete_permission(self, request, obj=None):
        return False
