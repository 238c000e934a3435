from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from .models import Company, Team, User


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    """
    User admin configuration
    """
    list_display = (
        'username', 'email', 'role', 'company',
        'is_active', 'is_activated', 'created_at'
    )
    list_filter = ('role', 'is_active', 'is_activated', 'is_staff', 'created_at')
    search_fields = ('username', 'email', 'first_name', 'last_name')
    ordering = ('-created_at',)
    readonly_fields = ('created_at', 'updated_at', 'activated_at')

    fieldsets = BaseUserAdmin.fieldsets + (
        ('Organisation', {
            'fields': ('role', 'company')
        }),
        ('Activation', {
            'fields': ('is_activated', 'activated_at', 'activation_code', 'activation_code_expires_at')
        }),
        ('Timestamps', {
            'fields': ('created_at', 'updated_at')
        }),
    )

    add_fieldsets = BaseUserAdmin.add_fieldsets + (
        ('Organisation', {
            'fields': ('email', 'role', 'company')
        }),
    )


@admin.register(Company)
class CompanyAdmin(admin.ModelAdmin):
    list_display = ('name', 'created_at')
    search_fields = ('name',)


@admin.register(Team)
class TeamAdmin(admin.ModelAdmin):
    list_display = ('name', 'company', 'created_at')
    list_filter = ('company',)
    search_fields = ('name',)
    filter_horizontal = ('members',)
