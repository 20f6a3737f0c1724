from django.contrib import admin

from .models import CustomUser


@admin.register(CustomUser)
class CustomUserAdmin(admin.ModelAdmin):
    list_display = ('id', 'email', 'user_type', 'wallet_address', 'escrows_as_client', 'escrows_as_freelancer', 'is_active')
    list_filter = ('user_type', 'is_active', 'is_staff')
    search_fields = ('email', 'wallet_address')
    readonly_fields = ('escrows_as_client', 'escrows_as_freelancer')
