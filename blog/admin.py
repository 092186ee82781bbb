from django.contrib import admin
from django.utils import timezone

from .models import Category, Post, Tag


@admin.register(Category)
class CategoryAdmin(admin.ModelAdmin):
    list_display = ("name", "slug", "created_at")
    prepopulated_fields = {"slug": ("name",)}
    search_fields = ("name",)


@admin.register(Tag)
class TagAdmin(admin.ModelAdmin):
    list_display = ("name", "slug")
    prepopulated_fields = {"slug": ("name",)}
    search_fields = ("name",)


@admin.register(Post)
class PostAdmin(admin.ModelAdmin):
    list_display = ("title", "author", "category", "status", "published_at", "views_count", "likes_count")
    list_filter = ("status", "category", "tags")
    list_select_related = ("author", "category")
    prepopulated_fields = {"slug": ("title",)}
    search_fields = ("title", "content")
    filter_horizontal = ("tags",)
    readonly_fields = ("views_count", "created_at", "updated_at")
    date_hierarchy = "published_at"
    actions = ["publish_now", "unpublish"]

    @admin.action(description="Publish selected posts now")
    def publish_now(self, request, queryset):
        updated = queryset.filter(published_at__isnull=True).update(published_at=timezone.now())
        count = queryset.update(status=Post.STATUS_PUBLISHED)
        self.message_user(request, f"Published {count} post(s) ({updated} newly dated).")

    @admin.action(description="Move selected posts back to draft")
    def unpublish(self, request, queryset):
        count = queryset.update(status=Post.STATUS_DRAFT)
        self.message_user(request, f"Moved {count} post(s) to draft.")
