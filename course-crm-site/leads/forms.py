# leads/forms.py
from django import forms

from .models import Lead
from .validation import COUNTRY_CODE_CHOICES, normalize_phone, validate_phone


class LeadIntakeForm(forms.ModelForm):
    country_code = forms.ChoiceField(choices=COUNTRY_CODE_CHOICES, initial='+52')

    class Meta:
        model = Lead
        fields = ['name', 'email', 'country_code', 'phone', 'role', 'level',
                  'software', 'clients', 'investment', 'why']

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        for name in ('role', 'level', 'software', 'clients', 'investment', 'why'):
            self.fields[name].required = True

    def clean_name(self):
        return (self.cleaned_data.get('name') or '').strip()

    def clean(self):
        cleaned = super().clean()
        phone = cleaned.get('phone')
        code = cleaned.get('country_code')
        if phone and code:
            ok, message = validate_phone(phone, code)
            if not ok:
                self.add_error('phone', message)
            else:
                cleaned['phone'] = normalize_phone(phone)
        return cleaned

    def save(self, commit=True):
        lead = super().save(commit=False)
        # intake never chooses the status
        lead.status = Lead.STATUS_LEAD
        if commit:
            lead.save()
        return lead


class LeadNotesForm(forms.ModelForm):
    class Meta:
        model = Lead
        fields = ['notes', 'assigned_to']
