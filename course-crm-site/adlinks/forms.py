# adlinks/forms.py
from urllib.parse import urlsplit

from django import forms

from .models import AdLink
from .services import (
    EDITABLE_FIELDS, SLUG_FORMAT_MESSAGE, SLUG_TAKEN_MESSAGE,
    is_slug_available, is_valid_slug, normalize_slug,
)


class AdLinkForm(forms.ModelForm):
    class Meta:
        model = AdLink
        fields = list(EDITABLE_FIELDS)
        widgets = {
            'expiration_date': forms.DateTimeInput(attrs={'type': 'datetime-local'},
                                                   format='%Y-%m-%dT%H:%M'),
            'description': forms.Textarea(attrs={'rows': 3}),
        }

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields['expiration_date'].input_formats = ['%Y-%m-%dT%H:%M', '%Y-%m-%d %H:%M', '%Y-%m-%d']

    def clean_slug(self):
        slug = normalize_slug(self.cleaned_data.get('slug'))
        if not is_valid_slug(slug):
            raise forms.ValidationError(SLUG_FORMAT_MESSAGE)
        if not is_slug_available(slug, exclude_id=self.instance.pk):
            raise forms.ValidationError(SLUG_TAKEN_MESSAGE)
        return slug

    def clean_target_url(self):
        url = (self.cleaned_data.get('target_url') or '').strip()
        if url.startswith('/') and not url.startswith('//'):
            return url
        parts = urlsplit(url)
        if parts.scheme not in ('http', 'https') or not parts.netloc:
            raise forms.ValidationError('Use an http(s) URL or a path starting with /.')
        return url
