# content/models.py
from django.db import models
from django.contrib.auth.models import User


class ContentItem(models.Model):
    KIND_TEXT = 'text'
    KIND_IMAGE = 'image'
    KIND_VIDEO = 'video'

    KIND_CHOICES = [
        (KIND_TEXT, 'Text'),
        (KIND_IMAGE, 'Image'),
        (KIND_VIDEO, 'Video'),
    ]

    section    = models.CharField(max_length=60)
    key        = models.CharField(max_length=80)
    kind       = models.CharField(max_length=10, choices=KIND_CHOICES, default=KIND_TEXT)
    label      = models.CharField(max_length=150, blank=True)
    # text body, or the media URL for image / video
    value      = models.TextField(blank=True)
    position   = models.PositiveSmallIntegerField(default=0)

    updated_by = models.ForeignKey(User, null=True, blank=True, on_delete=models.SET_NULL,
                                   related_name='content_changes')
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['section', 'position', 'key']
        constraints = [
            models.UniqueConstraint(fields=['section', 'key'], name='content_section_key_uniq'),
        ]

    def __str__(self):
        return f"{self.section}.{self.key}"
