from django.contrib import admin
from django.contrib.auth.admin import UserAdmin
from .models import User

@admin.register(User)
class CustomUserAdmin(UserAdmin):
    list_display = ('username', 'email', 'role', 'organization', 'is_staff', 'is_active')
    list_filter = ('role', 'is_staff', 'is_superuser', 'is_active', 'organization')
    search_fields = ('username', 'email', 'first_name', 'last_name')
    fieldsets = UserAdmin.fieldsets + (
        ('Organization', {'fields': ('role', 'phone', 'organization')}),
    )
    add_fieldsets = UserAdmin.add_fieldsets + (
        ('Organization', {'fields': ('role', 'phone', 'organization')}),
    )
