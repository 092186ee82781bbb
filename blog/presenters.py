"""
Plain data structures handed to the HTTP layer.

Every payload field is listed explicitly so the JSON shape does not depend
on model internals. Build them with the ``from_*`` constructors and call
``to_dict()`` to serialize.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Optional

from django.core.paginator import Page


def _isoformat(value) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass(frozen=True)
class AuthorSummary:
    id: int
    name: str

    @classmethod
    def from_user(cls, user) -> "AuthorSummary":
        return cls(id=user.pk, name=user.get_full_name() or user.get_username())


@dataclass(frozen=True)
class CategorySummary:
    id: int
    name: str
    slug: str
    posts_count: Optional[int] = None

    @classmethod
    def from_category(cls, category) -> "CategorySummary":
        return cls(
            id=category.pk,
            name=category.name,
            slug=category.slug,
            posts_count=getattr(category, "posts_count", None),
        )


@dataclass(frozen=True)
class TagSummary:
    id: int
    name: str
    slug: str
    posts_count: Optional[int] = None

    @classmethod
    def from_tag(cls, tag) -> "TagSummary":
        return cls(
            id=tag.pk,
            name=tag.name,
            slug=tag.slug,
            posts_count=getattr(tag, "posts_count", None),
        )


@dataclass(frozen=True)
class PostSummary:
    id: int
    title: str
    slug: str
    excerpt: str
    published_at: Optional[str]
    views_count: int
    likes_count: int
    reading_time: int
    author: AuthorSummary
    category: Optional[CategorySummary]
    tags: list[TagSummary] = field(default_factory=list)

    @classmethod
    def _fields_from_post(cls, post) -> dict:
        return dict(
            id=post.pk,
            title=post.title,
            slug=post.slug,
            excerpt=post.excerpt,
            published_at=_isoformat(post.published_at),
            views_count=post.views_count,
            likes_count=post.likes_count,
            reading_time=post.reading_time,
            author=AuthorSummary.from_user(post.author),
            category=CategorySummary.from_category(post.category) if post.category else None,
            tags=[TagSummary.from_tag(tag) for tag in post.tags.all()],
        )

    @classmethod
    def from_post(cls, post) -> "PostSummary":
        return cls(**cls._fields_from_post(post))

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class PostDetail(PostSummary):
    content: str = ""

    @classmethod
    def from_post(cls, post) -> "PostDetail":
        return cls(content=post.content, **cls._fields_from_post(post))


@dataclass(frozen=True)
class PostPage:
    data: list[PostSummary]
    current_page: int
    last_page: int
    per_page: int
    total: int

    @classmethod
    def from_page(cls, page: Page) -> "PostPage":
        paginator = page.paginator
        return cls(
            data=[PostSummary.from_post(post) for post in page.object_list],
            current_page=page.number,
            last_page=paginator.num_pages,
            per_page=paginator.per_page,
            total=paginator.count,
        )

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class PostListing:
    posts: PostPage
    categories: list[CategorySummary]
    tags: list[TagSummary]
    filters: dict

    def to_dict(self) -> dict:
        return {
            "posts": self.posts.to_dict(),
            "categories": [asdict(category) for category in self.categories],
            "tags": [asdict(tag) for tag in self.tags],
            "filters": dict(self.filters),
        }


@dataclass(frozen=True)
class PostDetailPage:
    post: PostDetail
    related_posts: list[PostSummary]

    def to_dict(self) -> dict:
        return {
            "post": self.post.to_dict(),
            "relatedPosts": [related.to_dict() for related in self.related_posts],
        }
