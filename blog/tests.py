from datetime import timedelta
from io import StringIO
from itertools import count
from unittest.mock import patch

from django.contrib import admin
from django.contrib.auth import get_user_model
from django.core.management import CommandError, call_command
from django.db import DatabaseError
from django.test import RequestFactory, TestCase, override_settings
from django.urls import reverse
from django.utils import timezone

from .admin import PostAdmin
from .models import Category, Post, Tag
from .presenters import PostSummary
from .queries import PostFilters, filter_posts, related_posts
from .services import record_view

User = get_user_model()

_seq = count(1)


def make_post(author, **kwargs):
    n = next(_seq)
    tags = kwargs.pop("tags", ())
    fields = {
        "title": f"Post number {n}",
        "content": f"Body of post {n}.",
        "status": Post.STATUS_PUBLISHED,
    }
    fields.update(kwargs)
    post = Post.objects.create(author=author, **fields)
    if tags:
        post.tags.set(tags)
    return post


def make_draft(author, **kwargs):
    kwargs.setdefault("status", Post.STATUS_DRAFT)
    return make_post(author, **kwargs)


class BlogTestCase(TestCase):
    def setUp(self):
        self.user = User.objects.create_user(
            username="author", password="pass", first_name="Ada", last_name="Lovelace"
        )

    def list_posts(self, **params):
        response = self.client.get(reverse("blog:post_list"), params)
        self.assertEqual(response.status_code, 200)
        return response.json()

    def titles(self, payload):
        return [post["title"] for post in payload["posts"]["data"]]


class PostListingTests(BlogTestCase):
    def test_lists_only_published_posts(self):
        category = Category.objects.create(name="General")
        for _ in range(3):
            make_post(self.user, category=category)
        make_draft(self.user)
        make_draft(self.user)

        payload = self.list_posts()

        self.assertEqual(len(payload["posts"]["data"]), 3)
        self.assertEqual(payload["posts"]["total"], 3)
        for key in ("categories", "tags", "filters"):
            self.assertIn(key, payload)

    def test_future_dated_posts_are_hidden(self):
        make_post(self.user, title="Visible")
        make_post(self.user, title="Scheduled", published_at=timezone.now() + timedelta(days=1))

        self.assertEqual(self.titles(self.list_posts()), ["Visible"])

    def test_filter_by_category(self):
        tech = Category.objects.create(name="Tech", slug="tech")
        lifestyle = Category.objects.create(name="Lifestyle", slug="lifestyle")
        make_post(self.user, category=tech)
        make_post(self.user, category=tech)
        make_post(self.user, category=lifestyle)
        make_draft(self.user, category=tech)

        payload = self.list_posts(category="tech")

        self.assertEqual(len(payload["posts"]["data"]), 2)
        self.assertTrue(all(p["category"]["slug"] == "tech" for p in payload["posts"]["data"]))
        self.assertEqual(payload["filters"]["category"], "tech")

    def test_filter_by_tag(self):
        tag = Tag.objects.create(name="Programming", slug="programming")
        other = Tag.objects.create(name="Travel", slug="travel")
        make_post(self.user, tags=[tag])
        make_post(self.user, tags=[tag, other])
        make_post(self.user)
        make_draft(self.user, title="Programming Draft", tags=[tag])
        make_post(
            self.user, title="Programming Scheduled", tags=[tag],
            published_at=timezone.now() + timedelta(days=1),
        )

        payload = self.list_posts(tag="programming")

        self.assertEqual(len(payload["posts"]["data"]), 2)
        self.assertNotIn("Programming Draft", self.titles(payload))
        self.assertNotIn("Programming Scheduled", self.titles(payload))
        self.assertEqual(payload["filters"]["tag"], "programming")

    def test_unknown_filter_values_give_empty_page(self):
        make_post(self.user)

        payload = self.list_posts(category="nope", tag="missing")

        self.assertEqual(payload["posts"]["data"], [])
        self.assertEqual(payload["posts"]["total"], 0)

    def test_search_matches_title_case_insensitively(self):
        make_post(self.user, title="Laravel Tutorial")
        make_post(self.user, title="React Guide")
        make_draft(self.user, title="Laravel Draft")
        make_post(self.user, title="Laravel Preview", published_at=timezone.now() + timedelta(days=1))

        payload = self.list_posts(search="laravel")

        self.assertEqual(self.titles(payload), ["Laravel Tutorial"])
        self.assertEqual(payload["filters"]["search"], "laravel")

    def test_search_ignores_content_by_default(self):
        make_post(self.user, title="React Guide", content="Compared with Laravel...")

        self.assertEqual(self.list_posts(search="Laravel")["posts"]["data"], [])

    @override_settings(BLOG={"SEARCH_CONTENT": True})
    def test_search_can_include_content(self):
        make_post(self.user, title="React Guide", content="Compared with Laravel...")
        make_post(self.user, title="Vue Guide", content="Nothing relevant")

        self.assertEqual(self.titles(self.list_posts(search="laravel")), ["React Guide"])

    def test_sort_by_date(self):
        old = make_post(self.user, title="Old", published_at=timezone.now() - timedelta(weeks=1))
        new = make_post(self.user, title="New", published_at=timezone.now())

        self.assertEqual(self.titles(self.list_posts(sort="newest")), [new.title, old.title])
        self.assertEqual(self.titles(self.list_posts(sort="oldest")), [old.title, new.title])

    def test_default_and_invalid_sort_mean_newest(self):
        make_post(self.user, title="Old", published_at=timezone.now() - timedelta(days=2))
        make_post(self.user, title="New", published_at=timezone.now() - timedelta(hours=1))

        self.assertEqual(self.titles(self.list_posts()), ["New", "Old"])
        payload = self.list_posts(sort="sideways")
        self.assertEqual(self.titles(payload), ["New", "Old"])
        self.assertEqual(payload["filters"]["sort"], "newest")

    def test_sort_by_popularity(self):
        make_post(self.user, title="Unpopular", views_count=10, likes_count=1)
        make_post(self.user, title="Popular", views_count=1000, likes_count=100)
        make_draft(self.user, title="Viral Draft", views_count=10**6, likes_count=10**4)
        make_post(
            self.user, title="Viral Scheduled", views_count=10**6,
            published_at=timezone.now() + timedelta(days=1),
        )

        self.assertEqual(self.titles(self.list_posts(sort="popular")), ["Popular", "Unpopular"])

    def test_popularity_weighs_likes(self):
        make_post(self.user, title="Viewed", views_count=100, likes_count=0)
        make_post(self.user, title="Liked", views_count=10, likes_count=50)

        self.assertEqual(self.titles(self.list_posts(sort="popular")), ["Liked", "Viewed"])

    @override_settings(BLOG={"PAGINATE_BY": 2})
    def test_pagination(self):
        for _ in range(5):
            make_post(self.user)

        first = self.list_posts()
        self.assertEqual(len(first["posts"]["data"]), 2)
        self.assertEqual(first["posts"]["last_page"], 3)
        self.assertEqual(first["posts"]["per_page"], 2)
        self.assertEqual(first["posts"]["total"], 5)

        self.assertEqual(len(self.list_posts(page=3)["posts"]["data"]), 1)
        self.assertEqual(self.list_posts(page="abc")["posts"]["current_page"], 1)
        self.assertEqual(self.list_posts(page=99)["posts"]["current_page"], 3)
        self.assertEqual(self.list_posts(page="last")["posts"]["current_page"], 3)
        self.assertEqual(self.list_posts(page=0)["posts"]["current_page"], 1)
        self.assertEqual(self.list_posts(page=-2)["posts"]["current_page"], 1)

    @override_settings(BLOG={"PAGINATE_BY": 0})
    def test_non_positive_page_size_falls_back_to_default(self):
        for _ in range(3):
            make_post(self.user)

        payload = self.list_posts()

        self.assertEqual(payload["posts"]["per_page"], 9)
        self.assertEqual(payload["posts"]["total"], 3)

    def test_categories_and_tags_count_published_posts(self):
        tech = Category.objects.create(name="Tech")
        Category.objects.create(name="Empty")
        tag = Tag.objects.create(name="python")
        make_post(self.user, category=tech, tags=[tag])
        make_draft(self.user, category=tech, tags=[tag])

        payload = self.list_posts()

        counts = {c["name"]: c["posts_count"] for c in payload["categories"]}
        self.assertEqual(counts, {"Empty": 0, "Tech": 1})
        self.assertEqual(payload["tags"][0]["posts_count"], 1)

    def test_response_carries_request_id(self):
        response = self.client.get(reverse("blog:post_list"), HTTP_X_REQUEST_ID="abc123")

        self.assertEqual(response["X-Request-ID"], "abc123")


class PostDetailTests(BlogTestCase):
    def test_view_individual_post(self):
        category = Category.objects.create(name="General")
        tags = [Tag.objects.create(name="one"), Tag.objects.create(name="two")]
        post = make_post(self.user, category=category, tags=tags)
        initial_views = post.views_count

        response = self.client.get(post.get_absolute_url())

        self.assertEqual(response.status_code, 200)
        payload = response.json()
        self.assertEqual(payload["post"]["title"], post.title)
        self.assertEqual(payload["post"]["content"], post.content)
        self.assertEqual(payload["post"]["author"]["name"], "Ada Lovelace")
        self.assertEqual(payload["post"]["category"]["slug"], category.slug)
        self.assertEqual(len(payload["post"]["tags"]), 2)
        self.assertIn("relatedPosts", payload)

        post.refresh_from_db()
        self.assertEqual(post.views_count, initial_views + 1)

    def test_each_view_counts_once(self):
        post = make_post(self.user, views_count=5)

        self.client.get(post.get_absolute_url())
        response = self.client.get(post.get_absolute_url())

        self.assertEqual(response.json()["post"]["views_count"], 7)
        post.refresh_from_db()
        self.assertEqual(post.views_count, 7)

    def test_detail_url_shape(self):
        post = make_post(self.user, title="Hello World")

        self.assertEqual(post.get_absolute_url(), "/posts/hello-world")

    def test_unknown_slug_is_404(self):
        self.assertEqual(self.client.get("/posts/does-not-exist").status_code, 404)

    def test_unpublished_posts_are_404(self):
        draft = make_draft(self.user)
        scheduled = make_post(self.user, published_at=timezone.now() + timedelta(hours=1))

        self.assertEqual(self.client.get(draft.get_absolute_url()).status_code, 404)
        self.assertEqual(self.client.get(scheduled.get_absolute_url()).status_code, 404)
        draft.refresh_from_db()
        self.assertEqual(draft.views_count, 0)

    def test_shows_related_posts(self):
        category = Category.objects.create(name="General")
        main = make_post(self.user, category=category)
        make_post(self.user, category=category)
        make_post(self.user, category=category)
        make_post(self.user)

        response = self.client.get(main.get_absolute_url())

        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.json()["relatedPosts"]), 2)

    def test_failed_view_count_does_not_block_response(self):
        post = make_post(self.user)

        with patch.object(Post, "increment_views", side_effect=DatabaseError("boom")):
            with self.assertLogs("blog.services", level="ERROR") as logs:
                response = self.client.get(post.get_absolute_url())

        self.assertEqual(response.status_code, 200)
        self.assertIn("Failed to record view", logs.output[0])
        post.refresh_from_db()
        self.assertEqual(post.views_count, 0)

    def test_post_deleted_before_view_is_counted_still_renders(self):
        post = make_post(self.user)
        increment_views = Post.increment_views

        def delete_then_increment(instance):
            Post.objects.filter(pk=instance.pk).delete()
            return increment_views(instance)

        with patch.object(Post, "increment_views", delete_then_increment):
            with self.assertLogs("blog.services", level="WARNING") as logs:
                response = self.client.get(post.get_absolute_url())

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["post"]["title"], post.title)
        self.assertIn("vanished", logs.output[0])

    def test_record_view_reports_missing_row(self):
        post = make_post(self.user, views_count=4)
        Post.objects.filter(pk=post.pk).delete()

        with self.assertLogs("blog.services", level="WARNING"):
            self.assertFalse(record_view(post))
        self.assertEqual(post.views_count, 4)


class RelatedPostsTests(BlogTestCase):
    def setUp(self):
        super().setUp()
        self.category = Category.objects.create(name="Tech")
        now = timezone.now()
        self.main = make_post(self.user, category=self.category, published_at=now - timedelta(days=10))
        self.siblings = [
            make_post(self.user, category=self.category, published_at=now - timedelta(days=d))
            for d in (1, 2, 3, 4)
        ]

    def test_excludes_self_and_other_categories(self):
        make_post(self.user, category=Category.objects.create(name="Other"))
        make_draft(self.user, category=self.category)

        related = related_posts(self.main, limit=10)

        self.assertNotIn(self.main, related)
        self.assertEqual(related, self.siblings)

    def test_bounded_by_limit(self):
        self.assertEqual(related_posts(self.main, limit=2), self.siblings[:2])
        self.assertEqual(related_posts(self.main, limit=0), [])

    @override_settings(BLOG={"RELATED_POSTS_LIMIT": 1})
    def test_default_limit_from_settings(self):
        self.assertEqual(related_posts(self.main), self.siblings[:1])

    def test_post_without_category_has_no_related(self):
        loner = make_post(self.user)

        self.assertEqual(related_posts(loner), [])


class PostFiltersTests(TestCase):
    def test_blank_values_are_absent(self):
        filters = PostFilters.from_params({"category": "  ", "tag": "", "search": " go "})

        self.assertEqual(
            filters.as_dict(), {"category": None, "tag": None, "search": "go", "sort": "newest"}
        )

    def test_known_sort_is_kept(self):
        self.assertEqual(PostFilters.from_params({"sort": "popular"}).sort, "popular")
        self.assertEqual(PostFilters.from_params({"sort": "POPULAR"}).sort, "newest")


class PostModelTests(BlogTestCase):
    def test_slug_generated_and_unique(self):
        first = make_post(self.user, title="Same Title")
        second = make_post(self.user, title="Same Title")

        self.assertEqual(first.slug, "same-title")
        self.assertEqual(second.slug, "same-title-1")

    def test_publishing_stamps_published_at(self):
        draft = make_draft(self.user)
        self.assertIsNone(draft.published_at)
        self.assertFalse(draft.is_published)

        draft.status = Post.STATUS_PUBLISHED
        draft.save()

        self.assertIsNotNone(draft.published_at)
        self.assertTrue(draft.is_published)

    def test_increment_is_atomic_for_stale_copies(self):
        post = make_post(self.user, views_count=3)
        copy_a = Post.objects.get(pk=post.pk)
        copy_b = Post.objects.get(pk=post.pk)

        self.assertTrue(record_view(copy_a))
        self.assertTrue(record_view(copy_b))

        post.refresh_from_db()
        self.assertEqual(post.views_count, 5)
        self.assertEqual(copy_b.views_count, 5)

    def test_reading_time(self):
        post = make_post(self.user, content="word " * 650)

        self.assertEqual(post.reading_time, 4)
        self.assertEqual(PostSummary.from_post(post).reading_time, 4)
        self.assertEqual(make_post(self.user, content="word " * 200).reading_time, 1)
        self.assertEqual(make_post(self.user, content="").reading_time, 1)

    def test_filter_posts_queryset_is_distinct_for_tags(self):
        a = Tag.objects.create(name="a")
        post = make_post(self.user, tags=[a])

        self.assertEqual(list(filter_posts(PostFilters(tag="a"))), [post])


class SeedBlogCommandTests(TestCase):
    def test_creates_published_and_draft_posts(self):
        call_command("seed_blog", posts=5, drafts=2, seed=1, stdout=StringIO())

        self.assertEqual(Post.objects.published().count(), 5)
        self.assertEqual(Post.objects.filter(status=Post.STATUS_DRAFT).count(), 2)
        self.assertTrue(Category.objects.exists())

    def test_flush_replaces_existing_posts(self):
        call_command("seed_blog", posts=3, drafts=0, stdout=StringIO())
        call_command("seed_blog", posts=2, drafts=0, flush=True, stdout=StringIO())

        self.assertEqual(Post.objects.count(), 2)

    def test_rejects_negative_counts(self):
        with self.assertRaises(CommandError):
            call_command("seed_blog", posts=-1, stdout=StringIO())


class PostAdminTests(BlogTestCase):
    def setUp(self):
        super().setUp()
        self.model_admin = PostAdmin(Post, admin.site)
        self.request = RequestFactory().post("/admin/blog/post/")

    def test_publish_now_stamps_and_publishes(self):
        draft = make_draft(self.user)

        with patch.object(self.model_admin, "message_user") as message_user:
            self.model_admin.publish_now(self.request, Post.objects.filter(pk=draft.pk))

        draft.refresh_from_db()
        self.assertTrue(draft.is_published)
        message_user.assert_called_once()

    def test_unpublish_hides_post(self):
        post = make_post(self.user)

        with patch.object(self.model_admin, "message_user"):
            self.model_admin.unpublish(self.request, Post.objects.filter(pk=post.pk))

        self.assertEqual(self.client.get(post.get_absolute_url()).status_code, 404)
