# blog/management/commands/seed_blog.py
import random
from datetime import timedelta

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError
from django.db import transaction
from django.utils import timezone

from blog.models import Category, Post, Tag

CATEGORIES = ("Technology", "Lifestyle", "Travel", "Food")
TAGS = ("programming", "python", "django", "design", "productivity", "career")
WORDS = (
    "lorem ipsum dolor sit amet consectetur adipiscing elit sed do eiusmod "
    "tempor incididunt ut labore et dolore magna aliqua"
).split()


def _sentence(rng: random.Random, length: int) -> str:
    return " ".join(rng.choice(WORDS) for _ in range(length)).capitalize()


class Command(BaseCommand):
    help = "Populate the blog with demo categories, tags and posts."

    def add_arguments(self, parser):
        parser.add_argument("--posts", type=int, default=12, help="Published posts to create.")
        parser.add_argument("--drafts", type=int, default=3, help="Draft posts to create.")
        parser.add_argument("--author", default="demo", help="Username owning the posts.")
        parser.add_argument("--seed", type=int, default=None, help="Random seed.")
        parser.add_argument(
            "--flush", action="store_true", help="Delete existing posts, categories and tags first."
        )

    def handle(self, *args, **options):
        if options["posts"] < 0 or options["drafts"] < 0:
            raise CommandError("--posts and --drafts must be zero or more.")

        rng = random.Random(options["seed"])
        with transaction.atomic():
            if options["flush"]:
                Post.objects.all().delete()
                Category.objects.all().delete()
                Tag.objects.all().delete()

            author, _ = get_user_model().objects.get_or_create(
                username=options["author"], defaults={"first_name": "Demo", "last_name": "Author"}
            )
            categories = [Category.objects.get_or_create(name=name)[0] for name in CATEGORIES]
            tags = [Tag.objects.get_or_create(name=name)[0] for name in TAGS]

            now = timezone.now()
            for i in range(options["posts"]):
                post = Post.objects.create(
                    title=_sentence(rng, 4),
                    excerpt=_sentence(rng, 12),
                    content="\n\n".join(_sentence(rng, 60) for _ in range(4)),
                    status=Post.STATUS_PUBLISHED,
                    published_at=now - timedelta(days=i, hours=rng.randint(0, 23)),
                    views_count=rng.randint(0, 5000),
                    likes_count=rng.randint(0, 300),
                    author=author,
                    category=rng.choice(categories),
                )
                post.tags.set(rng.sample(tags, k=rng.randint(0, 3)))

            for _ in range(options["drafts"]):
                Post.objects.create(
                    title=_sentence(rng, 4),
                    content=_sentence(rng, 80),
                    author=author,
                    category=rng.choice(categories),
                )

        self.stdout.write(
            self.style.SUCCESS(
                f"Created {options['posts']} published and {options['drafts']} draft post(s)."
            )
        )
