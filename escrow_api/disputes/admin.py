from django.contrib import admin

from .models import Dispute


@admin.register(Dispute)
class DisputeAdmin(admin.ModelAdmin):
    list_display = ('escrow', 'raised_by', 'raised_at', 'resolved', 'resolved_by', 'resolved_at')
    list_filter = ('resolved',)
    search_fields = ('escrow__id', 'raised_by__email', 'reason')
