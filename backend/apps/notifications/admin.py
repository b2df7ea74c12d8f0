from django.contrib import admin

from .models import AnalyticsEvent, Notification


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ["type", "user_id", "title", "is_read", "created_at"]
    list_filter = ["type", "is_read"]
    search_fields = ["user_id"]
    readonly_fields = ["id", "created_at"]


@admin.register(AnalyticsEvent)
class AnalyticsEventAdmin(admin.ModelAdmin):
    list_display = ["event_type", "user_id", "created_at"]
    list_filter = ["event_type"]
    readonly_fields = ["created_at"]
