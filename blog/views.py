from django.http import JsonResponse
from django.views.generic import DetailView, ListView

from .conf import DEFAULTS, get_setting
from .models import Post
from .presenters import (
    CategorySummary,
    PostDetail,
    PostDetailPage,
    PostListing,
    PostPage,
    PostSummary,
    TagSummary,
)
from .queries import (
    PostFilters,
    categories_with_counts,
    filter_posts,
    related_posts,
    tags_with_counts,
)
from .services import record_view


class JSONResponseMixin:
    def render_to_response(self, context, **response_kwargs):
        return JsonResponse(self.get_data(context), **response_kwargs)

    def get_data(self, context):
        raise NotImplementedError


class PostListView(JSONResponseMixin, ListView):
    def get_paginate_by(self, queryset):
        try:
            per_page = int(get_setting("PAGINATE_BY"))
        except (TypeError, ValueError):
            per_page = 0
        return per_page if per_page > 0 else DEFAULTS["PAGINATE_BY"]

    def get_queryset(self):
        self.filters = PostFilters.from_params(self.request.GET)
        return filter_posts(self.filters)

    def paginate_queryset(self, queryset, page_size):
        # Lenient paging: "last" and past the end -> last page, junk or < 1 -> first page.
        paginator = self.get_paginator(queryset, page_size)
        page_number = self.request.GET.get(self.page_kwarg)
        if page_number == "last":
            page_number = paginator.num_pages
        else:
            try:
                page_number = max(int(page_number), 1)
            except (TypeError, ValueError):
                page_number = 1
        page = paginator.get_page(page_number)
        return paginator, page, page.object_list, page.has_other_pages()

    def get_data(self, context):
        listing = PostListing(
            posts=PostPage.from_page(context["page_obj"]),
            categories=[CategorySummary.from_category(c) for c in categories_with_counts()],
            tags=[TagSummary.from_tag(t) for t in tags_with_counts()],
            filters=self.filters.as_dict(),
        )
        return listing.to_dict()


class PostDetailView(JSONResponseMixin, DetailView):
    slug_field = "slug"
    slug_url_kwarg = "slug"

    def get_queryset(self):
        return (
            Post.objects.published()
            .select_related("author", "category")
            .prefetch_related("tags")
        )

    def get_object(self, queryset=None):
        post = super().get_object(queryset)
        record_view(post)
        return post

    def get_data(self, context):
        post = context["object"]
        page = PostDetailPage(
            post=PostDetail.from_post(post),
            related_posts=[PostSummary.from_post(p) for p in related_posts(post)],
        )
        return page.to_dict()
