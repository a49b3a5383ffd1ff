from django.contrib import admin
from .models import Organization, Setting


class SettingInline(admin.TabularInline):
    model = Setting
    extra = 0
    fields = ('key', 'value', 'updated_at')
    readonly_fields = ('updated_at',)


@admin.register(Organization)
class OrganizationAdmin(admin.ModelAdmin):
    list_display = ('name', 'slug', 'waha_enabled', 'created_at')
    search_fields = ('name', 'slug')
    list_filter = ('waha_enabled', 'created_at')
    prepopulated_fields = {'slug': ('name',)}
    inlines = [SettingInline]


@admin.register(Setting)
class SettingAdmin(admin.ModelAdmin):
    list_display = ('key', 'organization', 'updated_at')
    list_filter = ('key',)
    search_fields = ('key', 'organization__name')
