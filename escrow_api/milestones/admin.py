from django.contrib import admin

from .models import Milestone


@admin.register(Milestone)
class MilestoneAdmin(admin.ModelAdmin):
    list_display = ('id', 'escrow_key', 'index', 'amount', 'due_date', 'completed', 'approved')
    list_filter = ('completed', 'approved')
    search_fields = ('escrow_key', 'description')
