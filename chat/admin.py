from django.contrib import admin
from django.urls import reverse
from django.utils.html import format_html
from .models import (
    ChatUser, Device, SavedAccount, Message, Reaction,
    UserActivity, TypingIndicator
)

# ==================== ADMIN CLASSES ====================

@admin.register(ChatUser)
class ChatUserAdmin(admin.ModelAdmin):
    list_display = ('username', 'color', 'status', 'is_online', 'last_seen')
    list_filter = ('is_online',)
    search_fields = ('username', 'status')
    actions = ['mark_offline']

    def mark_offline(self, request, queryset):
        updated = queryset.update(is_online=False)
        self.message_user(request, f"{updated} users marked offline")
    mark_offline.short_description = "Mark selected users offline"


class SavedAccountInline(admin.TabularInline):
    model = SavedAccount
    extra = 0
    fields = ('username', 'color', 'status', 'last_used')
    readonly_fields = ('last_used',)


@admin.register(Device)
class DeviceAdmin(admin.ModelAdmin):
    list_display = ('device_id', 'created_at', 'account_count')
    search_fields = ('device_id',)
    inlines = [SavedAccountInline]

    def account_count(self, obj):
        return obj.saved_accounts.count()
    account_count.short_description = 'Saved accounts'


@admin.register(SavedAccount)
class SavedAccountAdmin(admin.ModelAdmin):
    list_display = ('id', 'username', 'device_link', 'last_used')
    search_fields = ('username', 'device__device_id')
    list_filter = ('last_used',)

    def device_link(self, obj):
        url = reverse("admin:chat_device_change", args=[obj.device_id])
        return format_html('<a href="{}">{}</a>', url, obj.device_id)
    device_link.short_description = 'Device'
    device_link.admin_order_field = 'device__device_id'


@admin.register(Message)
class MessageAdmin(admin.ModelAdmin):
    list_display = ('id', 'username', 'timestamp', 'content_short', 'edited', 'deleted')
    list_filter = ('edited', 'deleted', 'timestamp')
    search_fields = ('text', 'username')

    def content_short(self, obj):
        return obj.text[:50] + '...' if len(obj.text) > 50 else obj.text
    content_short.short_description = 'Content'


@admin.register(Reaction)
class ReactionAdmin(admin.ModelAdmin):
    list_display = ('id', 'message', 'user', 'emoji')
    search_fields = ('user',)


@admin.register(UserActivity)
class UserActivityAdmin(admin.ModelAdmin):
    list_display = ('id', 'username', 'type', 'timestamp', 'details')
    list_filter = ('type', 'timestamp')
    search_fields = ('username', 'details')


@admin.register(TypingIndicator)
class TypingIndicatorAdmin(admin.ModelAdmin):
    list_display = ('username', 'timestamp')


# Basic admin site configuration
admin.site.site_header = "Chat Admin"
admin.site.site_title = "Chat Admin Portal"
admin.site.index_title = "Welcome"
