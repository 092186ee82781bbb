from django.conf import settings

DEFAULTS = {
    "PAGINATE_BY": 9,
    "RELATED_POSTS_LIMIT": 3,
    # popularity = views_count + likes_count * POPULARITY_LIKE_WEIGHT
    "POPULARITY_LIKE_WEIGHT": 2,
    # When False, search matches titles only.
    "SEARCH_CONTENT": False,
}


def get_setting(name: str):
    user_settings = getattr(settings, "BLOG", {})
    if name in user_settings:
        return user_settings[name]
    return DEFAULTS.get(name)
