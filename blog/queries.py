from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Optional

from django.db.models import Count, Q, QuerySet
from django.utils import timezone

from .conf import get_setting
from .models import Category, Post, Tag

SORT_NEWEST = "newest"
SORT_OLDEST = "oldest"
SORT_POPULAR = "popular"
SORT_CHOICES = (SORT_NEWEST, SORT_OLDEST, SORT_POPULAR)

ORDERINGS = {
    SORT_NEWEST: ("-published_at", "-pk"),
    SORT_OLDEST: ("published_at", "pk"),
    SORT_POPULAR: ("-popularity", "-published_at", "-pk"),
}


def _clean(value) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


@dataclass(frozen=True)
class PostFilters:
    category: Optional[str] = None
    tag: Optional[str] = None
    search: Optional[str] = None
    sort: str = SORT_NEWEST

    @classmethod
    def from_params(cls, params: Mapping) -> "PostFilters":
        """
        Build filters from request query parameters.

        Blank values count as absent and an unknown sort key falls back to
        newest, so no combination of parameters is an error.
        """
        sort = _clean(params.get("sort"))
        if sort not in SORT_CHOICES:
            sort = SORT_NEWEST
        return cls(
            category=_clean(params.get("category")),
            tag=_clean(params.get("tag")),
            search=_clean(params.get("search")),
            sort=sort,
        )

    def as_dict(self) -> dict:
        return {
            "category": self.category,
            "tag": self.tag,
            "search": self.search,
            "sort": self.sort,
        }


def filter_posts(filters: PostFilters) -> QuerySet:
    qs = Post.objects.published().select_related("author", "category").prefetch_related("tags")

    if filters.category:
        qs = qs.filter(category__slug=filters.category)
    if filters.tag:
        qs = qs.filter(tags__slug=filters.tag).distinct()
    if filters.search:
        condition = Q(title__icontains=filters.search)
        if get_setting("SEARCH_CONTENT"):
            condition |= Q(content__icontains=filters.search)
        qs = qs.filter(condition)

    if filters.sort == SORT_POPULAR:
        qs = qs.with_popularity()
    return qs.order_by(*ORDERINGS[filters.sort])


def related_posts(post: Post, limit: Optional[int] = None) -> list[Post]:
    """Other published posts in the same category, newest first."""
    if limit is None:
        limit = get_setting("RELATED_POSTS_LIMIT")
    if post.category_id is None or limit <= 0:
        return []
    qs = (
        Post.objects.published()
        .filter(category_id=post.category_id)
        .exclude(pk=post.pk)
        .select_related("author", "category")
        .prefetch_related("tags")
        .order_by("-published_at", "-pk")
    )
    return list(qs[:limit])


def _published_count():
    return Count(
        "posts",
        filter=Q(
            posts__status=Post.STATUS_PUBLISHED,
            posts__published_at__lte=timezone.now(),
        ),
        distinct=True,
    )


def categories_with_counts() -> QuerySet:
    return Category.objects.annotate(posts_count=_published_count()).order_by("name")


def tags_with_counts() -> QuerySet:
    return Tag.objects.annotate(posts_count=_published_count()).order_by("name")
