# content/forms.py
from django import forms

from .variants import variant_for


class SectionForm(forms.Form):
    """One field per item of a section, named by the item's key."""

    def __init__(self, items, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.items = {item.key: item for item in items}
        for key, item in self.items.items():
            self.fields[key] = variant_for(item).form_field()

    def changed_items(self):
        for key, item in self.items.items():
            value = self.cleaned_data.get(key) or ''
            if value != item.value:
                yield item, value
