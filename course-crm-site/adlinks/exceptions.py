# adlinks/exceptions.py


class AdLinkError(Exception):
    pass


class InvalidSlug(AdLinkError):
    pass


class SlugTaken(AdLinkError):
    def __init__(self, slug):
        self.slug = slug
        super().__init__(f"Slug already in use: {slug}")
